import sys

from murl.cli import main

sys.exit(main())
