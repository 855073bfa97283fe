"""Runtime settings, overridable from the environment or a ``.env`` file."""

import os
from pathlib import Path

from dotenv import load_dotenv

from models import REFERENCE_SHEET_HEIGHT

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

DATA_DIR = Path(os.environ.get('WALLIFIED_DATA_DIR', '~/.wallified')).expanduser()
STORAGE_DIR = DATA_DIR / 'storage'
RECORDS_DIR = DATA_DIR / 'records'

# Base URL uploaded files are served from; empty means file:// URLs.
PUBLIC_URL = os.environ.get('WALLIFIED_PUBLIC_URL', '').rstrip('/')

# Height (px) of the preview rendered and uploaded with each design
PREVIEW_HEIGHT = int(os.environ.get('WALLIFIED_PREVIEW_HEIGHT', REFERENCE_SHEET_HEIGHT))
