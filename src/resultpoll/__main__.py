import sys

from resultpoll.cli import main

sys.exit(main())
