import sys

from drdump.runner import main

sys.exit(main())
