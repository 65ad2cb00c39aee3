import sys

from diskoinstall.main import main

if __name__ == '__main__':
	sys.exit(main())
