from waitlist.server import main

main()
