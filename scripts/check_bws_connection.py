"""
Check BWS Connection Script

Quick script to verify BWS SOAP Web Service connectivity by listing the
authenticators the server recognises.
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bws_logger import configure_logging
from bws_soap_client import check_connection

if __name__ == "__main__":
    configure_logging()
    success = check_connection()
    sys.exit(0 if success else 1)
