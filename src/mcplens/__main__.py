# Entry point for `python -m mcplens`
import sys

from mcplens.cli import main

sys.exit(main())
