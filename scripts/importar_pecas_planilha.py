"""Importa peças de uma planilha (xlsx/csv) para o estoque.

Uso:
    python scripts/importar_pecas_planilha.py caminho/para/pecas.xlsx
"""

import sys

from assistec import create_app
from assistec.services.importacao_service import carregar_planilha, importar_pecas


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    df = carregar_planilha(sys.argv[1])
    app = create_app()
    with app.app_context():
        resultado = importar_pecas(df)
    print(
        f"Importação concluída: {resultado['inseridas']} inserida(s), "
        f"{resultado['ignoradas']} ignorada(s)."
    )


if __name__ == "__main__":
    main()
