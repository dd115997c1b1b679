"""Constants used throughout HubStore."""

# Version
VERSION = "0.1.0"

# Object types, in the order existence probes try them
OBJECT_TYPES = ("tag", "commit", "tree", "blob")

# Tree entry modes
MODE_TREE = 0o040000
MODE_BLOB = 0o100644
MODE_EXEC = 0o100755
MODE_SYMLINK = 0o120000
MODE_COMMIT = 0o160000  # submodule link

# GitHub wants every mode as a 6 character octal string
MODE_TO_TYPE = {
    "040000": "tree",
    "100644": "blob",
    "100755": "blob",
    "120000": "blob",
    "160000": "commit",
}

# Refs
REFS_PREFIX = "refs/"
HEAD_REF = "HEAD"
DEFAULT_BRANCH = "master"
MISSING_REF_MESSAGE = "Reference does not exist"

# API path templates (":root" is expanded by the transport)
OBJECT_PATH = "/repos/:root/git/{type}s"
REF_PATH = "/repos/:root/git/{ref}"
REFS_PATH = "/repos/:root/git/refs"

# Transport defaults
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_WORKERS = 8
DEFAULT_TYPE_CACHE_SIZE = 10000

# Integrity repair search bounds: trailing newlines tried per message and
# the half-hour timezone grid the service collapses offsets onto
REPAIR_MAX_NEWLINES = 3
REPAIR_OFFSET_MIN = -720
REPAIR_OFFSET_MAX = 720
REPAIR_OFFSET_STEP = 30

# Hash algorithm
HASH_ALGORITHM = "sha1"
HASH_LENGTH = 40

# Environment variables
ENV_REPO = "HUBSTORE_REPO"
ENV_TOKEN = "HUBSTORE_TOKEN"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_API_URL = "HUBSTORE_API_URL"
ENV_DEFAULT_BRANCH = "HUBSTORE_DEFAULT_BRANCH"

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
