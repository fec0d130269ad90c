"""
Contract Validators — JSON Schema контракты treasury

Контракты лежат в contracts/schema/ корня репозитория и описывают данные,
пересекающие границу процесса:
- treasury_config: входная конфигурация (до pydantic, до build_treasury)
- treasury_snapshot: снапшот состояния для мониторинга

ИНВАРИАНТЫ:
1. Каждая схема проходит meta-validation (Draft 2020-12) до первого использования
2. Схемы и скомпилированные validators кэшируются на уровне loader
3. Pydantic модели проверяются по их JSON форме (model_dump(mode="json")):
   principal суммы > 2^53 в контракте только строками
4. При нескольких нарушениях поднимается наиболее релевантное (best_match),
   полный список доступен через errors()
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Final, List, Optional

from jsonschema import Draft202012Validator, ValidationError
from jsonschema.exceptions import best_match
from pydantic import BaseModel

# contracts/schema относительно корня репозитория (src/core/contracts/ → корень)
DEFAULT_SCHEMA_DIR: Final[Path] = Path(__file__).resolve().parents[3] / "contracts" / "schema"

TREASURY_CONFIG: Final[str] = "treasury_config"
TREASURY_SNAPSHOT: Final[str] = "treasury_snapshot"


# =============================================================================
# LOADER
# =============================================================================


class SchemaLoader:
    """Чтение, meta-validation и кэш схем из одного каталога."""

    def __init__(self, schema_dir: Optional[Path] = None):
        self.schema_dir = Path(schema_dir) if schema_dir is not None else DEFAULT_SCHEMA_DIR
        self._schemas: Dict[str, Dict[str, Any]] = {}
        self._validators: Dict[str, Draft202012Validator] = {}

    def available(self) -> List[str]:
        """Имена схем в каталоге (без .json), отсортированные."""
        return sorted(path.stem for path in self.schema_dir.glob("*.json"))

    def load(self, name: str) -> Dict[str, Any]:
        """
        Схема по имени.

        Raises:
            FileNotFoundError: Нет файла <name>.json
            SchemaError: Файл не является валидной Draft 2020-12 схемой
        """
        cached = self._schemas.get(name)
        if cached is not None:
            return cached

        path = self.schema_dir / f"{name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Contract schema {name!r} not found in {self.schema_dir}")
        schema = json.loads(path.read_text(encoding="utf-8"))
        Draft202012Validator.check_schema(schema)

        self._schemas[name] = schema
        return schema

    def validator(self, name: str) -> Draft202012Validator:
        compiled = self._validators.get(name)
        if compiled is None:
            compiled = Draft202012Validator(self.load(name))
            self._validators[name] = compiled
        return compiled


@lru_cache(maxsize=None)
def default_loader() -> SchemaLoader:
    """Общий loader для DEFAULT_SCHEMA_DIR (создаётся при первом обращении)."""
    return SchemaLoader()


# =============================================================================
# VALIDATORS
# =============================================================================


def format_error(error: ValidationError) -> str:
    """'parameters.fee_fraction: 1000001 is greater than ...' ('$' для корня)."""
    location = ".".join(str(part) for part in error.absolute_path) or "$"
    return f"{location}: {error.message}"


class ContractValidator:
    """Проверка данных против одного контракта."""

    schema_name: str = ""

    def __init__(self, schema_name: Optional[str] = None, loader: Optional[SchemaLoader] = None):
        if schema_name is not None:
            self.schema_name = schema_name
        self._validator = (loader or default_loader()).validator(self.schema_name)

    @property
    def schema(self) -> Dict[str, Any]:
        return self._validator.schema

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Наиболее релевантное нарушение контракта
        """
        error = best_match(self._validator.iter_errors(data))
        if error is not None:
            raise error

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def errors(self, data: Dict[str, Any]) -> List[str]:
        """Все нарушения, отформатированные и упорядоченные по пути."""
        found = sorted(
            self._validator.iter_errors(data),
            key=lambda error: [str(part) for part in error.absolute_path],
        )
        return [format_error(error) for error in found]

    def validate_model(self, model: BaseModel) -> Dict[str, Any]:
        """
        JSON форма pydantic модели, проверенная контрактом.

        Returns:
            model.model_dump(mode="json")
        """
        data = model.model_dump(mode="json")
        self.validate(data)
        return data


class TreasuryConfigValidator(ContractValidator):
    schema_name = TREASURY_CONFIG


class TreasurySnapshotValidator(ContractValidator):
    schema_name = TREASURY_SNAPSHOT


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_treasury_config(data: Dict[str, Any]) -> None:
    TreasuryConfigValidator().validate(data)


def validate_treasury_snapshot(data: Dict[str, Any]) -> None:
    TreasurySnapshotValidator().validate(data)
