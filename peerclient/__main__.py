import sys

from peerclient.cli import main

sys.exit(main())
