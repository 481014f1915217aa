import importlib
from types import ModuleType
from typing import Any


class LazyModule:
    """
    Stand-in for a module that is imported the first time one of its attributes
    is accessed. Keeps heavy optional dependencies such as pyarrow and polars off
    the import path of code that never touches them.

    Example:
        pa = LazyModule("pyarrow")
        table = pa.table({"a": [1, 2]})  # pyarrow is imported here
    """

    def __init__(self, module_name: str, package: str | None = None):
        self._module_name = module_name
        self._package = package
        self._module: ModuleType | None = None

    def _load_module(self) -> ModuleType:
        if self._module is None:
            self._module = importlib.import_module(self._module_name, self._package)
        return self._module

    @property
    def is_loaded(self) -> bool:
        return self._module is not None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            # internal attributes never reach the wrapped module
            raise AttributeError(
                f"'{self.__class__.__name__}' object has no attribute '{name}'"
            )
        return getattr(self._load_module(), name)

    def __repr__(self) -> str:
        state = "loaded" if self.is_loaded else "not loaded"
        return f"LazyModule({self._module_name!r}, {state})"
