# File: src/treeagg/bootstrapper/config.py

# IP address where the bootstrapper listens.
# "0.0.0.0" is the most robust setting, meaning it listens on all available interfaces.
HOST = "0.0.0.0"

# Port number where the bootstrapper listens.
PORT = 5000

# Number of tree view requests collected before the topology is built.
N = 100

# Default topology: sorted high to low ranks, weight balanced.
PRIORITY = "HIGH_RANK"
DESCRIPTOR_TYPE = "RANK"
TREE_TYPE = "SORTED_HtL"
BALANCE_TYPE = "WEIGHT_BALANCED"

# Print the generated tree and every request received.
DEBUG = False
