import sys

from backend_walletscope.cli import main

sys.exit(main())
