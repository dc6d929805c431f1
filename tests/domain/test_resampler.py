import numpy as np

from voice_subtitles.domain.resampler import BlockResampler


def feed_in_chunks(resampler: BlockResampler, signal: np.ndarray, chunk_sizes: list[int]) -> np.ndarray:
    blocks = []
    offset = 0
    for size in chunk_sizes:
        blocks.extend(resampler.process(signal[offset : offset + size]))
        offset += size
    return np.concatenate(blocks) if blocks else np.zeros(0, dtype=np.float32)


class TestPassthrough:
    def test_emits_exact_blocks_and_keeps_remainder(self):
        resampler = BlockResampler(16000, 16000, block_size=4)
        assert resampler.passthrough

        blocks = resampler.process(np.arange(6, dtype=np.float32))
        assert [b.tolist() for b in blocks] == [[0, 1, 2, 3]]

        blocks = resampler.process(np.arange(6, 8, dtype=np.float32))
        assert [b.tolist() for b in blocks] == [[4, 5, 6, 7]]

    def test_short_input_emits_nothing(self):
        resampler = BlockResampler(16000, 16000, block_size=4096)
        assert resampler.process(np.zeros(100, dtype=np.float32)) == []

    def test_reset_drops_partial_block(self):
        resampler = BlockResampler(16000, 16000, block_size=4)
        resampler.process(np.ones(3, dtype=np.float32))
        resampler.reset()
        blocks = resampler.process(np.zeros(4, dtype=np.float32))
        assert blocks[0].tolist() == [0, 0, 0, 0]


class TestDownsampling:
    def test_48k_to_16k_takes_every_third_sample(self):
        resampler = BlockResampler(48000, 16000, block_size=4)
        blocks = resampler.process(np.arange(12, dtype=np.float32))
        assert [b.tolist() for b in blocks] == [[0, 3, 6, 9]]

    def test_output_length_tracks_rate_ratio(self):
        resampler = BlockResampler(44100, 16000, block_size=160)
        signal = np.zeros(44100, dtype=np.float32)
        output = feed_in_chunks(resampler, signal, [441] * 100)
        assert abs(len(output) - 16000) <= 160

    def test_chunking_does_not_change_output(self):
        rng = np.random.default_rng(3)
        signal = rng.uniform(-1, 1, 48000).astype(np.float32)

        whole = feed_in_chunks(BlockResampler(48000, 16000, 512), signal, [48000])
        pieces = feed_in_chunks(BlockResampler(48000, 16000, 512), signal, [1000, 7, 333, 4096] * 10 + [48000])

        assert len(whole) == len(pieces)
        assert np.allclose(whole, pieces, atol=1e-6)

    def test_constant_signal_stays_constant(self):
        resampler = BlockResampler(44100, 16000, block_size=256)
        output = feed_in_chunks(resampler, np.full(4410, 0.25, dtype=np.float32), [4410])
        assert np.allclose(output, 0.25)

    def test_blocks_are_float32(self):
        resampler = BlockResampler(48000, 16000, block_size=16)
        blocks = resampler.process(np.ones(96, dtype=np.float64))
        assert all(b.dtype == np.float32 and len(b) == 16 for b in blocks)
