from abc import ABC, abstractmethod
from entityforge.models import DataModel

class BaseGenerator(ABC):
    @abstractmethod
    def generate(self, model: DataModel, project_name: str = "API Project") -> str:
        """Generates a DDL script from a design model."""
        pass

    def quote_ident(self, ident: str) -> str:
        """Quotes an identifier if needed. Default implementation returns as is."""
        return ident
