"""piped-process 入口点。

支持: python -m piped_process -- CMD ARGS...
"""

import sys

from .app import main

if __name__ == "__main__":
    sys.exit(main())
