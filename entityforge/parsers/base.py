from abc import ABC, abstractmethod
from entityforge.models import DataModel

class BaseParser(ABC):
    @abstractmethod
    def parse(self, sql_content: str) -> DataModel:
        """Parses SQL content and returns a DataModel object."""
        pass
