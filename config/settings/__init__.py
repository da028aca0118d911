# config/settings/__init__.py
"""
Settings package.
Pick a concrete module through DJANGO_SETTINGS_MODULE:
config.settings.development, config.settings.production or config.settings.testing.
"""
