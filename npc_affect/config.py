# App Configuration
APP_NAME = "npc-affect-matrix"
APP_VERSION = "0.1.0"

# Server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# Affect range (valence and arousal share it)
AFFECT_MIN = -1.0
AFFECT_MAX = 1.0

# Prediction
PREDICTOR_BACKEND = "transformers"  # "transformers" or "gemini"
AFFECT_MODEL_NAME = "j-hartmann/emotion-english-distilroberta-base"
GEMINI_MODEL_NAME = "gemini-2.0-flash"
MAX_TEXT_LENGTH = 2000  # Characters; longer input is rejected, never truncated
MAX_INPUT_TOKENS = 512  # Hard cap even if the tokenizer reports a larger limit
INFERENCE_WORKERS = 4  # Threads used for timeout-bounded predictions

# Memory
MEMORY_ROOT = "npc_memories"
MEMORY_FILE_SUFFIX = ".json"
MAX_NPC_ID_LENGTH = 128
DEFAULT_MAX_RECORDS = 100  # Oldest interactions evicted beyond this
DEFAULT_DECAY_HALF_LIFE_SECONDS = 3600.0  # A memory's weight halves every hour
DEFAULT_BASELINE_WEIGHT = 2.0  # Weight of the personality "zeroth record"
