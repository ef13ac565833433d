import sys

from browserstack_grid.cli import main

sys.exit(main())
