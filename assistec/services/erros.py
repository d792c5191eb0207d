# assistec/services/erros.py
"""Exceções do domínio de estoque/ordens.

Hierarquia:
  ErroEstoque
    ├── ErroValidacao        (uma ou mais violações, todas reportadas juntas)
    ├── EstoqueInsuficiente  (ledger recusou: saldo não cobre o débito)
    ├── PecaNaoEncontrada
    ├── OrdemNaoEncontrada
    ├── ProdutoNaoEncontrado
    ├── VendaNaoEncontrada
    └── ErroPersistencia     (falha de I/O com o banco)
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class ErroEstoque(Exception):
    """Base de todos os erros de estoque/ordem."""


class ErroValidacao(ErroEstoque):
    def __init__(self, erros: Iterable[str]):
        self.erros: List[str] = list(erros)
        super().__init__("; ".join(self.erros) or "Dados inválidos.")


class EstoqueInsuficiente(ErroEstoque):
    def __init__(self, peca_id, disponivel: int, solicitado: int, nome: Optional[str] = None):
        self.peca_id = peca_id
        self.disponivel = disponivel
        self.solicitado = solicitado
        self.nome = nome
        rotulo = nome or f"peça {peca_id}"
        super().__init__(
            f"Estoque insuficiente para {rotulo}. "
            f"Estoque atual: {disponivel}, tentativa de débito: {solicitado}"
        )


class PecaNaoEncontrada(ErroEstoque):
    def __init__(self, peca_id):
        self.peca_id = peca_id
        super().__init__(f"Peça {peca_id} não encontrada.")


class OrdemNaoEncontrada(ErroEstoque):
    def __init__(self, ordem_id):
        self.ordem_id = ordem_id
        super().__init__(f"Ordem {ordem_id} não encontrada.")


class ProdutoNaoEncontrado(ErroEstoque):
    def __init__(self, produto_id):
        self.produto_id = produto_id
        super().__init__(f"Produto {produto_id} não encontrado.")


class VendaNaoEncontrada(ErroEstoque):
    def __init__(self, venda_id):
        self.venda_id = venda_id
        super().__init__(f"Venda {venda_id} não encontrada.")


class ErroPersistencia(ErroEstoque):
    """Falha ao ler/gravar no banco.

    ``tipo`` separa violação de restrição (``"restricao"``) de falha de
    transporte/conexão (``"transporte"``).
    """

    def __init__(self, mensagem: str, tipo: str = "transporte", original: Optional[BaseException] = None):
        self.tipo = tipo
        self.original = original
        super().__init__(mensagem)
