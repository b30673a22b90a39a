"""pyagscrm - read and patch AGS compiled room (.crm) files."""

__version__ = "0.1.0"
