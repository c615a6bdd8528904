def synchronized(f):
    """Run the method with the lock of the object held.
    The object must have the lock in its 'lock' attribute."""
    def wrapper(self, *args, **kwargs):
        self.lock.acquire()
        try:
            return f(self, *args, **kwargs)
        finally:
            self.lock.release()

    return wrapper
