import os
import sys

# Add the api directory and this directory to the path so tests can import
# services/routers and the shared helpers
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.dirname(__file__))
