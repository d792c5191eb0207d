# assistec/services/importacao_service.py
"""Carga de peças a partir de planilha (xlsx/csv) com pandas.

Colunas esperadas (primeira linha = cabeçalho):
    nome, fabricante, modelo, codigo_fabricante, preco_unitario, estoque

Linhas sem nome são ignoradas, assim como nomes já cadastrados.
O estoque inicial de cada peça vira uma movimentação de entrada.
"""

import logging

import pandas as pd

from assistec import db
from assistec.models_sqla import Peca
from assistec.services.estoque_service import registrar_estoque_inicial

logger = logging.getLogger(__name__)

COLUNAS = ["nome", "fabricante", "modelo", "codigo_fabricante", "preco_unitario", "estoque"]


def carregar_planilha(caminho: str) -> pd.DataFrame:
    if caminho.lower().endswith(".csv"):
        df = pd.read_csv(caminho)
    else:
        df = pd.read_excel(caminho)
    df.columns = [str(c).strip().lower() for c in df.columns]
    if "nome" not in df.columns:
        raise ValueError("Planilha sem a coluna obrigatória 'nome'")
    return df.reindex(columns=COLUNAS)


def _texto(valor):
    return None if pd.isna(valor) else str(valor).strip() or None


def importar_pecas(df: pd.DataFrame) -> dict:
    """Cadastra as peças do DataFrame. Precisa de app context. Faz commit."""
    df = df.reindex(columns=COLUNAS)
    existentes = {n.lower() for (n,) in db.session.query(Peca.nome).all()}
    novas = []
    ignoradas = 0

    for _, row in df.iterrows():
        nome = _texto(row["nome"])
        if not nome or nome.lower() in existentes:
            ignoradas += 1
            continue

        estoque = int(row["estoque"]) if not pd.isna(row["estoque"]) else 0
        preco = float(row["preco_unitario"]) if not pd.isna(row["preco_unitario"]) else 0.0
        if estoque < 0 or preco < 0:
            logger.warning(f"[Importação] Ignorada (valor negativo): {nome}")
            ignoradas += 1
            continue

        peca = Peca(
            nome=nome,
            fabricante=_texto(row["fabricante"]),
            modelo=_texto(row["modelo"]),
            codigo_fabricante=_texto(row["codigo_fabricante"]),
            preco_unitario=preco,
            estoque=estoque,
        )
        db.session.add(peca)
        novas.append(peca)
        existentes.add(nome.lower())

    db.session.flush()
    for peca in novas:
        registrar_estoque_inicial(peca)
    db.session.commit()
    inseridas = len(novas)
    logger.info(f"[Importação] {inseridas} peça(s) inserida(s), {ignoradas} ignorada(s).")
    return {"inseridas": inseridas, "ignoradas": ignoradas}
