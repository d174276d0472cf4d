import sys

from repertoirevision.main import main

sys.exit(main())
