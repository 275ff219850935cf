import sys

from pgscraper.cli import main

sys.exit(main())
