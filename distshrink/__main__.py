import sys

from distshrink.cli import main

sys.exit(main())
