"""Services package - table engine and its collaborators."""
