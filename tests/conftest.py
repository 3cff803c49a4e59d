import sys
from pathlib import Path

# Makes the package importable when running from a source checkout
SOURCES = Path(__file__).absolute().parent.parent / "src" / "py"
if str(SOURCES) not in sys.path:
	sys.path.insert(0, str(SOURCES))

# EOF
