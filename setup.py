"""Build configuration for Wallified Poster Studio.

Usage:
    pip install -e .[test]        # develop / run the tests
    python setup.py py2app        # macOS only: dist/Wallified Studio.app
"""
import sys

from setuptools import setup

APP = ['poster_studio.py']
DATA_FILES = []
OPTIONS = {
    'argv_emulation': False,  # must be False for Qt apps
    'plist': {
        'CFBundleName': 'Wallified Studio',
        'CFBundleDisplayName': 'Wallified Studio',
        'CFBundleIdentifier': 'in.wallified.studio',
        'CFBundleVersion': '1.0.0',
        'CFBundleShortVersionString': '1.0',
        'LSMinimumSystemVersion': '11.0',
        'NSHighResolutionCapable': True,
        'CFBundleDocumentTypes': [{
            'CFBundleTypeName': 'Photo',
            'CFBundleTypeRole': 'Viewer',
            'LSHandlerRank': 'Alternate',
            'LSItemContentTypes': ['public.jpeg', 'public.png', 'org.webmproject.webp'],
        }],
    },
    'packages': ['PySide6', 'PIL', 'dotenv'],
    'strip': False,  # avoid "Operation not permitted" on macOS SIP-protected binaries
}

py2app_args = {}
if 'py2app' in sys.argv:
    py2app_args = dict(
        app=APP,
        data_files=DATA_FILES,
        options={'py2app': OPTIONS},
        setup_requires=['py2app'],
    )

setup(
    name='wallified-studio',
    version='1.0.0',
    description='Custom photo poster design studio',
    python_requires='>=3.10',
    py_modules=[
        'cart', 'config', 'controller', 'editor', 'errors', 'geometry', 'intake',
        'models', 'persistence', 'poster_studio', 'preview', 'pricing', 'views',
    ],
    install_requires=[
        'PySide6>=6.5',
        'Pillow>=10.1',
        'python-dotenv>=1.0',
    ],
    extras_require={
        'test': ['pytest>=7', 'pytest-qt>=4.2'],
    },
    entry_points={
        'gui_scripts': ['wallified-studio = poster_studio:main'],
    },
    **py2app_args,
)
