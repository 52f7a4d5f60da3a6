"""
Shared constants for the updater.
"""

# Local configuration file, looked up next to the app
LOCAL_CONFIG_FILE = "updaterConfig.json"

# Run log, written next to the app
LOG_FILE = "updaterLog.txt"

# Where overwritten files are copied before being replaced
BACKUP_FOLDER = "_BACKUP"

# Read size for hashing and copying local files
CHUNK_SIZE = 65536
