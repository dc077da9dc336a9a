import sys

from playdeck.main import main

sys.exit(main())
