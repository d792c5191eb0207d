"""SQLAlchemy models for the Assistec database.

Usage:
    from assistec import db
    from assistec.models_sqla import Peca, OrdemServico, ItemOrdem

The ``db`` object must be initialized by calling ``db.init_app(app)``
in the application factory (this already happens in ``assistec/__init__.py``).

Stock (``Peca.estoque``) must only be changed through
``assistec.services.estoque_service.ajustar_estoque``, which mirrors every
change in a ``MovimentacaoEstoque`` row. The stock a part is registered with
is recorded as an ``entrada`` (``registrar_estoque_inicial``).

Product stock (``Produto.estoque``) is separate from part stock and is
debited by sales (``assistec.services.vendas_service``).
"""

from datetime import datetime

from assistec import db

STATUS_ORDEM = ("aberta", "em_andamento", "concluida", "cancelada")
STATUS_VENDA = ("concluida", "cancelada")
FORMAS_PAGAMENTO = ("dinheiro", "cartao", "pix", "transferencia")


# ============================
# Cadastros
# ============================


class Cliente(db.Model):
    __tablename__ = "clientes"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    telefone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    endereco = db.Column(db.String(255), nullable=True)
    cpf = db.Column(db.String(20), nullable=True)
    criado_em = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def as_dict(self) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["criado_em"] = self.criado_em.isoformat() if self.criado_em else None
        return d


class Tecnico(db.Model):
    __tablename__ = "tecnicos"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    telefone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    endereco = db.Column(db.String(255), nullable=True)
    cpf = db.Column(db.String(20), nullable=True)
    criado_em = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def as_dict(self) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["criado_em"] = self.criado_em.isoformat() if self.criado_em else None
        return d


# ============================
# Estoque
# ============================


class Peca(db.Model):
    __tablename__ = "pecas_manutencao"
    __table_args__ = (
        db.CheckConstraint("estoque >= 0", name="ck_pecas_estoque_nao_negativo"),
    )

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    fabricante = db.Column(db.String(100), nullable=True)
    modelo = db.Column(db.String(100), nullable=True)
    codigo_fabricante = db.Column(db.String(50), nullable=True)
    preco_unitario = db.Column(db.Float, nullable=False, default=0.0)
    estoque = db.Column(db.Integer, nullable=False, default=0)
    criado_em = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    atualizado_em = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def as_dict(self) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["criado_em"] = self.criado_em.isoformat() if self.criado_em else None
        d["atualizado_em"] = (
            self.atualizado_em.isoformat() if self.atualizado_em else None
        )
        return d

    def __repr__(self) -> str:
        return f"<Peca {self.id} {self.nome!r} estoque={self.estoque}>"


class MovimentacaoEstoque(db.Model):
    """Histórico de entradas/saídas. ``chave`` torna um ajuste idempotente."""

    __tablename__ = "movimentacoes_estoque"

    id = db.Column(db.Integer, primary_key=True)
    peca_id = db.Column(
        db.Integer, db.ForeignKey("pecas_manutencao.id"), nullable=False, index=True
    )
    tipo = db.Column(db.String(10), nullable=False)  # entrada | saida
    quantidade = db.Column(db.Integer, nullable=False)
    estoque_resultante = db.Column(db.Integer, nullable=False)
    referencia_tipo = db.Column(db.String(30), nullable=True)
    referencia_id = db.Column(db.Integer, nullable=True)
    observacao = db.Column(db.Text, nullable=True)
    chave = db.Column(db.String(120), nullable=True, unique=True)
    criado_em = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def as_dict(self) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["criado_em"] = self.criado_em.isoformat() if self.criado_em else None
        return d


# ============================
# Ordens de serviço
# ============================


class OrdemServico(db.Model):
    __tablename__ = "ordens_servico"

    id = db.Column(db.Integer, primary_key=True)
    cliente_id = db.Column(db.Integer, db.ForeignKey("clientes.id"), nullable=False)
    tecnico_id = db.Column(db.Integer, db.ForeignKey("tecnicos.id"), nullable=True)
    dispositivo = db.Column(db.String(120), nullable=False)
    descricao_problema = db.Column(db.Text, nullable=False)
    diagnostico = db.Column(db.Text, nullable=True)
    servico_realizado = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="aberta")
    valor_manutencao = db.Column(db.Float, nullable=True)
    data_abertura = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    data_conclusao = db.Column(db.DateTime, nullable=True)

    cliente = db.relationship("Cliente", lazy="joined")
    tecnico = db.relationship("Tecnico", lazy="joined")
    itens = db.relationship(
        "ItemOrdem",
        back_populates="ordem",
        cascade="all, delete-orphan",
        order_by="ItemOrdem.id",
    )

    @property
    def total_itens(self) -> float:
        return round(sum(i.subtotal for i in self.itens), 2)

    @property
    def total(self) -> float:
        return round((self.valor_manutencao or 0.0) + self.total_itens, 2)

    def as_dict(self, com_itens: bool = True) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["data_abertura"] = self.data_abertura.isoformat() if self.data_abertura else None
        d["data_conclusao"] = (
            self.data_conclusao.isoformat() if self.data_conclusao else None
        )
        d["cliente_nome"] = self.cliente.nome if self.cliente else None
        d["tecnico_nome"] = self.tecnico.nome if self.tecnico else None
        d["total_itens"] = self.total_itens
        d["total"] = self.total
        if com_itens:
            d["itens"] = [i.as_dict() for i in self.itens]
        return d


class ItemOrdem(db.Model):
    __tablename__ = "itens_ordem"

    id = db.Column(db.Integer, primary_key=True)
    ordem_id = db.Column(
        db.Integer, db.ForeignKey("ordens_servico.id"), nullable=False, index=True
    )
    peca_id = db.Column(
        db.Integer, db.ForeignKey("pecas_manutencao.id"), nullable=True, index=True
    )
    nome_item = db.Column(db.String(120), nullable=False)
    quantidade = db.Column(db.Integer, nullable=False)
    preco_unitario = db.Column(db.Float, nullable=False, default=0.0)
    is_from_estoque = db.Column(db.Boolean, nullable=False, default=False)

    ordem = db.relationship("OrdemServico", back_populates="itens")

    @property
    def subtotal(self) -> float:
        return (self.quantidade or 0) * (self.preco_unitario or 0.0)

    def as_dict(self) -> dict:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


# ============================
# Produtos e vendas
# ============================


class CategoriaProduto(db.Model):
    __tablename__ = "categorias_produto"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(80), nullable=False, unique=True)
    criado_em = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.nome,
            "criado_em": self.criado_em.isoformat() if self.criado_em else None,
        }


class Produto(db.Model):
    """Item de revenda (capas, carregadores...). Não é peça de manutenção."""

    __tablename__ = "produtos"
    __table_args__ = (
        db.CheckConstraint("estoque >= 0", name="ck_produtos_estoque_nao_negativo"),
    )

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    categoria_id = db.Column(
        db.Integer, db.ForeignKey("categorias_produto.id"), nullable=True
    )
    marca = db.Column(db.String(100), nullable=True)
    sku = db.Column(db.String(60), nullable=True)
    preco_custo = db.Column(db.Float, nullable=True)
    preco = db.Column(db.Float, nullable=False, default=0.0)
    estoque = db.Column(db.Integer, nullable=False, default=0)
    garantia_meses = db.Column(db.Integer, nullable=False, default=0)
    descricao = db.Column(db.Text, nullable=True)
    criado_em = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    atualizado_em = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    categoria = db.relationship("CategoriaProduto", lazy="joined")

    def as_dict(self) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["criado_em"] = self.criado_em.isoformat() if self.criado_em else None
        d["atualizado_em"] = (
            self.atualizado_em.isoformat() if self.atualizado_em else None
        )
        d["categoria_nome"] = self.categoria.nome if self.categoria else None
        return d


class Venda(db.Model):
    __tablename__ = "vendas"

    id = db.Column(db.Integer, primary_key=True)
    cliente_id = db.Column(db.Integer, db.ForeignKey("clientes.id"), nullable=True)
    vendedor_nome = db.Column(db.String(120), nullable=False)
    valor_total = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(20), nullable=False, default="concluida")
    forma_pagamento = db.Column(db.String(20), nullable=True)
    observacoes = db.Column(db.Text, nullable=True)
    data_venda = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    cliente = db.relationship("Cliente", lazy="joined")
    itens = db.relationship(
        "ItemVenda",
        back_populates="venda",
        cascade="all, delete-orphan",
        order_by="ItemVenda.id",
    )

    def as_dict(self, com_itens: bool = True) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["data_venda"] = self.data_venda.isoformat() if self.data_venda else None
        d["cliente_nome"] = self.cliente.nome if self.cliente else None
        if com_itens:
            d["itens"] = [i.as_dict() for i in self.itens]
        return d


class ItemVenda(db.Model):
    __tablename__ = "itens_venda"

    id = db.Column(db.Integer, primary_key=True)
    venda_id = db.Column(
        db.Integer, db.ForeignKey("vendas.id"), nullable=False, index=True
    )
    produto_id = db.Column(
        db.Integer, db.ForeignKey("produtos.id"), nullable=False, index=True
    )
    quantidade = db.Column(db.Integer, nullable=False)
    preco_unitario = db.Column(db.Float, nullable=False, default=0.0)
    garantia_ate = db.Column(db.Date, nullable=True)

    venda = db.relationship("Venda", back_populates="itens")
    produto = db.relationship("Produto", lazy="joined")

    @property
    def subtotal(self) -> float:
        return (self.quantidade or 0) * (self.preco_unitario or 0.0)

    def as_dict(self) -> dict:
        d = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        d["garantia_ate"] = self.garantia_ate.isoformat() if self.garantia_ate else None
        d["produto_nome"] = self.produto.nome if self.produto else None
        d["subtotal"] = round(self.subtotal, 2)
        return d
