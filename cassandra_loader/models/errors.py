class LoadError(Exception):
    """Loading a dataset (or starting the embedded server) failed."""


class ConnectionFailedError(LoadError):
    pass


class ScriptError(LoadError):
    pass


class FixtureError(LoadError):
    pass


class EmbeddedStartupError(LoadError):
    pass
