from mentra.cli import main

main()
