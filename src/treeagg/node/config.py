# File: src/treeagg/node/config.py

# --- BOOTSTRAPPER CONFIGURATION ---
# Default port of the tree server when only a host is given on the command line.
BOOTSTRAPPER_PORT = 5000

# --- OVERLAY NODE CONFIGURATION ---
# Maximum number of bytes accepted for one message
MAX_MESSAGE_SIZE = 65535

# Seconds allowed to connect and push one message to a peer
SEND_TIMEOUT = 2.0

# --- TREE CONFIGURATION ---
NODE_DEGREE = 3             # Node degree: one parent + (degree - 1) children

# --- AGGREGATION CONFIGURATION ---
# Delay (milliseconds) between receiving the tree view and starting the
# convergecast. All peers are assumed to hold their view once it expires.
DELAY_MILLIS = 3000
