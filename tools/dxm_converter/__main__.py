import sys

from .convert_dxm import main

sys.exit(main())
