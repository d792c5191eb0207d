# assistec/routes/cadastros_routes.py
"""Clientes e técnicos (CRUD simples)."""

from flask import Blueprint

from assistec import db
from assistec.models_sqla import Cliente, OrdemServico, Tecnico, Venda
from assistec.routes.respostas import _err, _ok, payload_json
from assistec.services.erros import ErroValidacao

cadastros_bp = Blueprint("cadastros_bp", __name__, url_prefix="/api")

CAMPOS_CONTATO = ("telefone", "email", "endereco", "cpf")


def _aplicar_campos(obj, dados: dict, *, novo: bool) -> None:
    if novo or "nome" in dados:
        nome = (dados.get("nome") or "").strip()
        if not nome:
            raise ErroValidacao(["Nome é obrigatório"])
        obj.nome = nome
    for campo in CAMPOS_CONTATO:
        if campo in dados:
            valor = str(dados[campo] or "").strip()
            setattr(obj, campo, valor or None)


# ============================
# Clientes
# ============================


@cadastros_bp.get("/clientes")
def listar_clientes():
    clientes = Cliente.query.order_by(Cliente.nome.asc()).all()
    return _ok(clientes=[c.as_dict() for c in clientes])


@cadastros_bp.post("/clientes")
def cadastrar_cliente():
    cliente = Cliente()
    _aplicar_campos(cliente, payload_json(), novo=True)
    db.session.add(cliente)
    db.session.commit()
    return _ok(201, cliente=cliente.as_dict())


@cadastros_bp.put("/clientes/<int:cliente_id>")
def editar_cliente(cliente_id):
    cliente = db.get_or_404(Cliente, cliente_id)
    _aplicar_campos(cliente, payload_json(), novo=False)
    db.session.commit()
    return _ok(cliente=cliente.as_dict())


@cadastros_bp.delete("/clientes/<int:cliente_id>")
def deletar_cliente(cliente_id):
    cliente = db.get_or_404(Cliente, cliente_id)
    if OrdemServico.query.filter_by(cliente_id=cliente_id).first():
        return _err(
            409,
            "cliente_com_ordens",
            "Cliente possui ordens de serviço; exclua as ordens primeiro.",
            cliente_id=cliente_id,
        )
    if Venda.query.filter_by(cliente_id=cliente_id).first():
        return _err(
            409,
            "cliente_com_vendas",
            "Cliente possui vendas registradas; não pode ser excluído.",
            cliente_id=cliente_id,
        )
    db.session.delete(cliente)
    db.session.commit()
    return _ok(cliente_id=cliente_id)


# ============================
# Técnicos
# ============================


@cadastros_bp.get("/tecnicos")
def listar_tecnicos():
    tecnicos = Tecnico.query.order_by(Tecnico.nome.asc()).all()
    return _ok(tecnicos=[t.as_dict() for t in tecnicos])


@cadastros_bp.post("/tecnicos")
def cadastrar_tecnico():
    tecnico = Tecnico()
    _aplicar_campos(tecnico, payload_json(), novo=True)
    db.session.add(tecnico)
    db.session.commit()
    return _ok(201, tecnico=tecnico.as_dict())


@cadastros_bp.put("/tecnicos/<int:tecnico_id>")
def editar_tecnico(tecnico_id):
    tecnico = db.get_or_404(Tecnico, tecnico_id)
    _aplicar_campos(tecnico, payload_json(), novo=False)
    db.session.commit()
    return _ok(tecnico=tecnico.as_dict())


@cadastros_bp.delete("/tecnicos/<int:tecnico_id>")
def deletar_tecnico(tecnico_id):
    tecnico = db.get_or_404(Tecnico, tecnico_id)
    # ordens do técnico ficam sem responsável
    OrdemServico.query.filter_by(tecnico_id=tecnico_id).update({"tecnico_id": None})
    db.session.delete(tecnico)
    db.session.commit()
    return _ok(tecnico_id=tecnico_id)
