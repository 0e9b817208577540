import sys

from saved_search_trigger.cli import main

sys.exit(main())
