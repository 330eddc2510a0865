from typing import List


class FakeEditor:
    """Fake editor recording every text insertion."""

    def __init__(self) -> None:
        self.inserted: List[str] = []

    def insert_text(self, text: str) -> None:
        self.inserted.append(text)

    @property
    def text(self) -> str:
        return "".join(self.inserted)
