import sys

from constructsafe.cli import main

sys.exit(main())
