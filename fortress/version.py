"""Fortress Client Meta information.
   Fortress Client provisions tenants and databases on the Fortress platform.
"""
__title__ = 'fortress'
__description__ = (
   'Fortress Client provisions tenants and databases on the Fortress '
   'platform and decrypts their connection credentials.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/fortress-build/fortress-python'
