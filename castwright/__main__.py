import sys

from castwright.main import main

if __name__ == '__main__':
    sys.exit(main())
