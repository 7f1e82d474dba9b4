import sys

from log_shipper.cli import main

sys.exit(main())
