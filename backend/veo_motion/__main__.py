import sys

from veo_motion.cli import main

if __name__ == "__main__":
    sys.exit(main())
