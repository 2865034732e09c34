class IndexerError(Exception):
    pass


class ConfigError(IndexerError):
    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("invalid configuration: " + "; ".join(self.problems))


class RpcError(IndexerError):
    def __init__(self, method: str, message: str):
        self.method = method
        super().__init__(f"{method}: {message}")


class QueryError(IndexerError):
    """Read-side failure, mapped onto an HTTP-like status by the query surface."""

    def __init__(self, status: int, error: str, **extra):
        self.status = status
        self.error  = error
        self.extra  = extra
        super().__init__(f"{status} {error}")

    def to_dict(self):
        return {"error": self.error, "status": self.status, **self.extra}
