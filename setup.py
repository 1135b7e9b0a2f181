"""
Singalong: Spotify playback companion with synced lyrics.

Install for development:
  pip install -e .[test]

Build a standalone Singalong.app with py2app (macOS):
  pip install py2app
  python setup.py py2app

The resulting app is in dist/Singalong.app. Config, tokens and preferences
are stored in ~/Library/Application Support/Singalong/.
"""
import sys

from setuptools import setup

MODULES = [
    "app",
    "app_paths",
    "config_singalong",
    "data_files",
    "errors",
    "launch_desktop",
    "lyrics_parser",
    "lyrics_providers",
    "preferences",
    "spotify_auth",
    "spotify_player",
    "time_format",
    "token_store",
]

OPTIONS = {
    "argv_emulation": False,
    "excludes": ["_tkinter", "tkinter"],
    "packages": [
        "flask",
        "werkzeug",
        "jinja2",
        "markupsafe",
        "requests",
        "rapidfuzz",
        "dotenv",
        "webview",  # import name is webview (pip package name is pywebview)
    ],
    "includes": MODULES,
    "plist": {
        "CFBundleName": "Singalong",
        "CFBundleDisplayName": "Singalong",
        "CFBundleIdentifier": "com.singalong.app",
        "CFBundleVersion": "1.0.0",
        "CFBundleShortVersionString": "1.0.0",
        "NSHighResolutionCapable": True,
    },
}

extra = {}
if "py2app" in sys.argv:
    extra = {
        "app": ["launch_desktop.py"],
        "options": {"py2app": OPTIONS},
        "setup_requires": ["py2app"],
    }

setup(
    name="singalong",
    version="1.0.0",
    description="Spotify playback companion with synced lyrics",
    py_modules=MODULES,
    python_requires=">=3.8",
    install_requires=[
        "flask",
        "requests",
        "rapidfuzz",
        "python-dotenv",
    ],
    extras_require={
        "desktop": ["pywebview"],
        "test": ["pytest"],
    },
    **extra,
)
