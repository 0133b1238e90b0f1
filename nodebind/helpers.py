from typing import Callable


Cleanup = Callable[[], None]


class Sentinel:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


# Marks a value that has not been observed yet, distinct from `None`
UNSET = Sentinel("UNSET")
