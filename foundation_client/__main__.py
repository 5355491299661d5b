import sys

from foundation_client.cli import main

sys.exit(main())
