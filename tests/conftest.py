"""Root conftest — environment for all tests."""

from pathlib import Path

from dotenv import load_dotenv

# Load .env at the root so live checks pick up WP2D_* settings.
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)
