# services/sheet_preview.py
from __future__ import annotations

import re
from typing import Any, Optional

import pandas as pd

from core.models import ProcessedFile, SheetData


def _dedupe_headers(headers: list[str], width: int) -> list[str]:
    """Cabeçalhos vazios viram "col", repetidos ganham sufixo _1, _2..."""
    headers = list(headers)[:width] + [""] * max(0, width - len(headers))
    seen: dict[str, int] = {}
    used: set[str] = set()
    fixed: list[str] = []
    for h in headers:
        h2 = re.sub(r"\s+", " ", str(h)).strip() or "col"
        if h2 in used:
            # o sufixo pode já existir como cabeçalho original ("a", "a", "a_1")
            n = seen.get(h2, 0) + 1
            while f"{h2}_{n}" in used:
                n += 1
            seen[h2] = n
            h2 = f"{h2}_{n}"
        used.add(h2)
        fixed.append(h2)
    return fixed


def sheet_to_dataframe(sheet: SheetData, max_rows: Optional[int] = None) -> pd.DataFrame:
    rows = list(sheet.data if max_rows is None else sheet.data[:max_rows])
    width = max([len(sheet.headers)] + [len(r) for r in rows])
    columns = _dedupe_headers(list(sheet.headers), width)

    # linhas "tortas" (mais curtas) são completadas com None
    padded = [list(r) + [None] * (width - len(r)) for r in rows]
    return pd.DataFrame(padded, columns=columns)


def file_overview(file: ProcessedFile) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"Aba": s.sheet_name, "Linhas": s.row_count, "Colunas": s.column_count}
            for s in file.sheets
        ],
        columns=["Aba", "Linhas", "Colunas"],
    )


def result_to_dataframe(result: Any) -> pd.DataFrame | None:
    """
    Tenta mostrar o resultado bruto da análise como tabela:
      - lista de registros (dicts)        -> uma linha por registro
      - dict de listas do mesmo tamanho   -> uma coluna por chave
      - dict de escalares                 -> tabela chave/valor
    Qualquer outra coisa devolve None (a UI mostra o JSON).
    """
    if isinstance(result, list) and result and all(isinstance(r, dict) for r in result):
        return pd.DataFrame(result)

    if isinstance(result, dict) and result:
        values = list(result.values())
        if all(isinstance(v, list) for v in values):
            if len({len(v) for v in values}) == 1:
                return pd.DataFrame(result)
            return None
        if not any(isinstance(v, (list, dict)) for v in values):
            return pd.DataFrame({"chave": list(result.keys()), "valor": values})

    return None
