"""Local HTTP adapter over one CryptogramSession."""
