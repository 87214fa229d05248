# config.py

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(levelname)s - %(message)s"
}

# Benchmark settings
BENCHMARK_SIZES = (100, 1000, 10000)
KEY_RANGE_FACTOR = 10  # keys are drawn from [0, size * KEY_RANGE_FACTOR)
DEFAULT_SEED = None
TREE_KINDS = ("ordered", "balanced")
OPERATIONS = ("insert", "delete")

# Initial arena rows of a tree built without an explicit capacity; arenas grow on demand
DEFAULT_CAPACITY = 1024
