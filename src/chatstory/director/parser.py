"""
Script Parser
Valida y convierte el documento JSON del guión (dashboard o IA) en un ChatScript.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from ..domain.errors import ScriptValidationError
from ..domain.models import ChatScript

logger = logging.getLogger(__name__)


class ScriptParser:
    """Validador y parseador de guiones de chat."""

    def parse(self, raw_input: Union[str, Dict[str, Any]]) -> ChatScript:
        """
        Convierte un JSON (string o dict) en un ChatScript validado.
        """
        # 1. Normalizar entrada
        if isinstance(raw_input, str):
            # Limpiar bloques de código markdown si existen
            clean_input = raw_input.replace("```json", "").replace("```", "").strip()
            try:
                data = json.loads(clean_input)
            except json.JSONDecodeError as e:
                logger.error(f"Error decodificando JSON del guión: {e}")
                raise ScriptValidationError("El guión no es un JSON válido") from e
        else:
            data = raw_input

        if not isinstance(data, dict):
            raise ScriptValidationError("El guión debe ser un objeto JSON")

        data = self._unwrap_export(data)

        # 2. Validación estricta con Pydantic
        try:
            script = ChatScript.model_validate(data)
        except ValidationError as e:
            logger.error(f"Error parseando guión: {e}")
            raise ScriptValidationError(str(e)) from e

        # 3. Validaciones de negocio adicionales
        self._validate_logic(script)
        return script

    def parse_file(self, path: Union[str, Path]) -> ChatScript:
        """Lee y parsea un guión desde disco."""
        path = Path(path)
        if not path.exists():
            raise ScriptValidationError(f"No se encuentra el guión: {path}")
        return self.parse(path.read_text(encoding="utf-8"))

    def _unwrap_export(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Los exports del dashboard anidan el título en 'project'.
        Se aplana para que el modelo lo reciba en la raíz.
        """
        project = data.get("project")
        if isinstance(project, dict):
            merged = {k: v for k, v in project.items() if k not in data}
            return {**merged, **{k: v for k, v in data.items() if k != "project"}}
        return data

    def _validate_logic(self, script: ChatScript):
        """Reglas de negocio extra (solo advertencias)."""
        if not script.dialogues:
            logger.warning(f"El guión '{script.title}' no tiene diálogos; se generará solo la intro.")

        sides = {c.side for c in script.characters.values()}
        if script.characters and "left" not in sides:
            logger.warning("Ningún personaje a la izquierda: no habrá indicador de escritura.")

        for i, dialogue in enumerate(script.dialogues):
            if not dialogue.is_time_divider and not dialogue.message and not dialogue.image_path:
                logger.warning(f"Diálogo {i + 1} sin texto ni imagen")
