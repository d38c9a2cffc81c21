"""Constants for mobibatch."""

from mobibatch import __version__

# Application constants
APP_NAME = "mobibatch"
APP_VERSION = __version__

# Default paths
DEFAULT_LOG_DIR = ".logs"
DEFAULT_CONFIG_FILE = "mobibatch.yaml"

# External compiler
DEFAULT_KINDLEGEN = "kindlegen"
DEFAULT_COMPRESSION_LEVEL = 0
MAX_COMPRESSION_LEVEL = 2

# Target format
TARGET_EXTENSION = ".mobi"
ARCHIVE_EXTENSION = ".zip"

# Canonical file names inside a job workspace
LOCAL_BASENAME = "book"
LOCAL_OUTPUT_NAME = LOCAL_BASENAME + TARGET_EXTENSION
FB2_HTML_NAME = "index.html"
FB2_OPF_NAME = LOCAL_BASENAME + ".opf"
FB2_NCX_NAME = LOCAL_BASENAME + ".ncx"

# Workspace directory prefix in the system temp dir
WORKSPACE_PREFIX = "mobibatch-"
