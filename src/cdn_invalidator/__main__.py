from cdn_invalidator.main import main

main()
