"""Tree Integrity - Content fingerprints for files and directory trees."""

__version__ = "0.1.0"

# File and schema constants
INTEGRITY_FILE = ".integrity.json"
CONFIG_FILE = ".tintrc.json"
PROJECT_MANIFEST_FILE = "package.json"
PROJECT_MANIFEST_KEY = "integrity"
SCHEMA_VERSION = "1"
