from chainhttp.app import main

main()
