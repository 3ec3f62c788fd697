import os
import sys

# Ensure src/ is on sys.path so tests can import booking_engine.* and resort_handlers.*,
# and tests/ so shared fakes are importable from nested test packages.
HERE = os.path.abspath(os.path.dirname(__file__))
ROOT = os.path.abspath(os.path.join(HERE, "..", "src"))
for path in (ROOT, HERE):
	if path not in sys.path:
		sys.path.insert(0, path)
