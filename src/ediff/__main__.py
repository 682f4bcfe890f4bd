import sys

from ediff.cli import main

sys.exit(main())
