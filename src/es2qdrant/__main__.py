import sys

from es2qdrant.cli import main

sys.exit(main())
