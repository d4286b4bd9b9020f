"""Settings for storefront.

Storage locations and merchant details can be overridden via environment
variables; everything else is a domain constant.
"""

import os
from pathlib import Path

_default_data_dir = Path(__file__).parent.parent.parent / "data"
DATA_DIR = Path(os.environ.get("STOREFRONT_DATA_DIR", _default_data_dir))
BLOB_DIR = Path(os.environ.get("STOREFRONT_BLOB_DIR", DATA_DIR / "blobs"))
PUBLIC_URL = os.environ.get("STOREFRONT_PUBLIC_URL", "http://localhost:8000/files")

PAYMENT_UPI_ID = os.environ.get("STOREFRONT_UPI_ID", "vaddadipickles@upi")
PAYMENT_MERCHANT_NAME = os.environ.get("STOREFRONT_MERCHANT_NAME", "Vaddadi Pickles")

CURRENCY = "INR"
UTR_LENGTH = 12
PAYMENT_PROOF_BUCKET = "payment-proofs"

# Reporting windows (number of most recent buckets kept)
DAILY_WINDOW = 30
MONTHLY_WINDOW = 12

SCHEMA_VERSION = 1
