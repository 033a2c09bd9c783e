from peeklint.cli import main

main()
