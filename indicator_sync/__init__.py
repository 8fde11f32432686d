"""indicator-sync: reconcile facility spreadsheet indicators into DHIS2 value sets."""

__version__ = "0.1.0"
