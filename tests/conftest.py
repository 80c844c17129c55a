import os

# Provide default environment variables for settings
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("OPENAI_API_KEY", "test")
os.environ.setdefault("QDRANT_PATH", "./.qdrant_test")
