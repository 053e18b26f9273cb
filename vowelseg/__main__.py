from vowelseg.cli import main

main()
