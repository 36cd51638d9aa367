from igloo.cli import main

main()
