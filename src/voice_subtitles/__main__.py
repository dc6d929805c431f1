from voice_subtitles.cli import main

main()
