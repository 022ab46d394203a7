import sys

from cve_ingestor.app.main import main

sys.exit(main())
