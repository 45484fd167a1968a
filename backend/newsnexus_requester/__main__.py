import sys

from newsnexus_requester.main import main

sys.exit(main())
