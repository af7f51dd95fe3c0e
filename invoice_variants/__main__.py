import sys

from invoice_variants.cli import main

if __name__ == "__main__":
    sys.exit(main())
