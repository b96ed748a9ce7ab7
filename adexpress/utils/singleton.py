class SingletonMeta(type):
    """
    Metaclass that keeps one instance per class.
    """

    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]

    def reset(cls) -> None:
        """
        Forget the cached instance, the next call builds a new one.
        """
        cls._instances.pop(cls, None)
