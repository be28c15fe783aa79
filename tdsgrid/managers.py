"""
Managers Public Module
"""

from tdsgrid.core.managers.multi_threading import thread_manager, ThreadManager
