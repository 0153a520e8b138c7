# File: src/treeagg/bootstrapper/overlay_configs.py

# Named topology presets selected on the bootstrapper command line.
# Each one maps to the arguments of TreeTopologyGenerator.

overlay_config_c1 = {
    # Highest rank at the root, every node fans out
    "priority": "HIGH_RANK",
    "tree_type": "SORTED_HtL",
    "balance_type": "WEIGHT_BALANCED",
}

overlay_config_c2 = {
    # Lowest rank at the root, every node fans out
    "priority": "LOW_RANK",
    "tree_type": "SORTED_LtH",
    "balance_type": "WEIGHT_BALANCED",
}

overlay_config_c3 = {
    # Random placement, ranks ignored
    "priority": "HIGH_RANK",
    "tree_type": "RANDOM",
    "balance_type": "WEIGHT_BALANCED",
}

overlay_config_c4 = {
    # Degenerate tree sorted high to low (a chain for degree 2)
    "priority": "HIGH_RANK",
    "tree_type": "SORTED_HtL",
    "balance_type": "LIST",
}

overlay_config_c5 = {
    # Degenerate tree in random order
    "priority": "HIGH_RANK",
    "tree_type": "RANDOM",
    "balance_type": "LIST",
}

overlay_configs = {
    "c1": overlay_config_c1,
    "c2": overlay_config_c2,
    "c3": overlay_config_c3,
    "c4": overlay_config_c4,
    "c5": overlay_config_c5,
}
