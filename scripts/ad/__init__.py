"""Active Directory reporting scripts."""
