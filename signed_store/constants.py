import uuid

MESSAGE_VERSION = "1"
LAYER_LITERAL = "literal"
LAYER_SIGNED = "signed"

KEY_STATUS_TRUSTED = "trusted"
KEY_STATUS_REVOKED = "revoked"

# Physical object names are uuid5(NAMESPACE_URL, key); changing this breaks existing stores.
IDENTITY_NAMESPACE = uuid.NAMESPACE_URL

LEDGER_FILENAME = ".access.sqlite3"
TMP_PREFIX = ".tmp-"

DEFAULT_LISTEN = "localhost:3000"
DEFAULT_TTL = "1d"
DEFAULT_SWEEP_INTERVAL = "1h"
DEFAULT_ACCESS_TRACKING = "sqlite"

SIGNED_MESSAGE_MEDIA_TYPE = "application/vnd.signed-store.message+json"
