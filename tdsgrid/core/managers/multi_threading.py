"""
Module for dealing with multi-threaded execution.

This is used to ensure that the total number of threads specified in the settings is not exceeded, even when
several datasets run their discovery at the same time.
"""

from threading import Lock
from multiprocessing.pool import ThreadPool

from tdsgrid.core.settings import settings

DEFAULT_N_THREADS = 8


class ThreadManager(object):
    """This is a singleton class that keeps track of the total number of threads used in an application."""

    _lock = Lock()
    _n_threads_used = 0
    __instance = None

    def __new__(cls):
        if ThreadManager.__instance is None:
            ThreadManager.__instance = object.__new__(cls)
        return ThreadManager.__instance

    def request_n_threads(self, n):
        """Returns the number of threads allowed for a pool taking into account all other threads application, as
        specified by tdsgrid.settings["N_THREADS"].

        Parameters
        -----------
        n : int
            Number of threads requested by operation

        Returns
        --------
        int
            Number of threads a pool may use. Note, this may be less than or equal to n, and may be 0.
        """
        with self._lock:
            available = max(0, (settings["N_THREADS"] or DEFAULT_N_THREADS) - self._n_threads_used)
            claimed = min(available, n)
            ThreadManager._n_threads_used += claimed
            return claimed

    def release_n_threads(self, n):
        """This releases the number of threads specified.

        Parameters
        ------------
        n : int
            Number of threads to be released

        Returns
        --------
        int
            Number of threads available after releases 'n' threads
        """
        with self._lock:
            ThreadManager._n_threads_used = max(0, self._n_threads_used - n)
            return max(0, (settings["N_THREADS"] or DEFAULT_N_THREADS) - self._n_threads_used)

    def get_thread_pool(self, processes):
        """Creates a threadpool that can be used to run jobs in parallel.

        Parameters
        -----------
        processes : int
            The number of threads or workers that will be part of the pool

        Returns
        --------
        multiprocessing.ThreadPool
        """
        return ThreadPool(processes=processes)

    def map(self, func, items, multithreading=True):
        """Apply func to every item, in a thread pool if threads are available.

        Results are returned in the order of `items`. Every item is processed; func is expected to handle its own
        exceptions.

        Parameters
        ----------
        func : callable
        items : list
        multithreading : bool, optional
            If False, items are processed serially. Default True.

        Returns
        -------
        list
        """
        items = list(items)
        n_threads = self.request_n_threads(len(items)) if multithreading and len(items) > 1 else 0
        if n_threads <= 1:
            self.release_n_threads(n_threads)
            return [func(item) for item in items]

        pool = self.get_thread_pool(processes=n_threads)
        try:
            return pool.map(func, items)
        finally:
            pool.close()
            pool.join()
            self.release_n_threads(n_threads)


thread_manager = ThreadManager()
