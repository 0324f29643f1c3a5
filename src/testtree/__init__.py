"""testtree - live test tree reconciliation for JavaScript test runners."""

__version__ = "0.1.0"
