from chlorophyll.cli.app import main

main()
