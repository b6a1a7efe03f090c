# billbook/constants.py
APP_NAME = "BillBook"

DATA_DIR = "data"
DB_FILE_NAME = "billbook.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- Stock units ----
# One bag is 30 kg. Consumption always rounds up to whole bags.
KG_PER_BAG = 30

UNIVERSAL_ITEM_NAME = "Bardana"
ITEM_CATEGORIES = ("Primary", "Kirana")

# ---- Reference numbers ----
REFERENCE_NO_PATTERN = r"[A-Za-z0-9_-]{1,50}"
SCOPE_SALE = "sale"
SCOPE_PURCHASE = "purchase"
NUMBER_SCOPES = (SCOPE_SALE, SCOPE_PURCHASE)
PAYMENT_NO_PREFIX = "PMT"

# ---- Transaction kinds ----
KIND_SALE = "sale"
KIND_PURCHASE = "purchase"
PAYMENT_IN = "payment-in"
PAYMENT_OUT = "payment-out"
PAYMENT_TYPES = (PAYMENT_IN, PAYMENT_OUT)

# ---- Documents ----
DOC_INVOICE = "invoice"
DOC_PURCHASE_BILL = "purchase-bill"
DOC_PAYMENT_RECEIPT = "payment-receipt"
DOC_PAYMENT_VOUCHER = "payment-voucher"
DOCUMENT_TYPES = (DOC_INVOICE, DOC_PURCHASE_BILL, DOC_PAYMENT_RECEIPT, DOC_PAYMENT_VOUCHER)

# ---- Money ----
MONEY_PLACES = 2
DEFAULT_COUNTRY_CODE = "91"

STOCK_OUT = "Out of Stock"
STOCK_LOW = "Low Stock"
STOCK_OK = "In Stock"
