import sys

from expandview.cli import main

sys.exit(main())
