import sys

from lighthouse_routes.cli import main

sys.exit(main())
