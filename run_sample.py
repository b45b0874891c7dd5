import sys

from bws_logger import configure_logging
from scenarios import main

if __name__ == "__main__":
    # Configure logging
    configure_logging()
    sys.exit(main())
