import os

# The Celery app checks the smart home backend on import, which needs a key
os.environ.setdefault("LO__SMART_HOME__SMARTTHINGS__API_KEY", "test-token")
