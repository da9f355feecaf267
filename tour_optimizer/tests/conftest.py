import os

# Tests never talk to the public routing server; settings also force this under pytest
os.environ.setdefault('USE_ROUTING_API_BY_DEFAULT', 'False')
