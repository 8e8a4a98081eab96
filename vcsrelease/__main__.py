from vcsrelease.cli.app import main

main()
