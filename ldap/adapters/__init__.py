from .ldap_adapter import LDAPAdapter

__all__ = ['LDAPAdapter']
