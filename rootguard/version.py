"""RootGuard Meta information.
   RootGuard gates privileged sessions behind a time-based one-time code.
"""
__title__ = 'rootguard'
__description__ = (
   'RootGuard verifies time-based one-time codes and keeps secrets '
   'and session material encrypted for a bounded lifetime.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 RootGuard Contributors'
__author__ = 'RootGuard Contributors'
__license__ = 'Apache-2.0'
