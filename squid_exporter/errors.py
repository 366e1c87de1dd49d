class FetchError(Exception):
    """The cache manager report could not be retrieved."""

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f"GET {url} failed: {cause}")
        self.url = url
        self.cause = cause
