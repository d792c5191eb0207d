# assistec/routes/vendas_routes.py
from flask import Blueprint, request
from sqlalchemy import or_

from assistec import db
from assistec.models_sqla import STATUS_VENDA, Cliente, Venda
from assistec.routes.respostas import _err, _ok, payload_json
from assistec.services.erros import ErroValidacao
from assistec.services.vendas_service import atualizar_venda, excluir_venda, registrar_venda

vendas_bp = Blueprint("vendas_bp", __name__, url_prefix="/api/vendas")


@vendas_bp.get("")
def listar_vendas():
    q = Venda.query
    status = request.args.get("status")
    if status:
        if status not in STATUS_VENDA:
            return _err(400, "validacao", f"Status inválido: {status}")
        q = q.filter(Venda.status == status)
    cliente_id = request.args.get("cliente_id", type=int)
    if cliente_id:
        q = q.filter(Venda.cliente_id == cliente_id)
    busca = (request.args.get("busca") or "").strip()
    if busca:
        # cliente ou vendedor
        like = f"%{busca}%"
        q = q.outerjoin(Cliente, Cliente.id == Venda.cliente_id).filter(
            or_(Cliente.nome.ilike(like), Venda.vendedor_nome.ilike(like))
        )

    vendas = q.order_by(Venda.data_venda.desc(), Venda.id.desc()).all()
    return _ok(vendas=[v.as_dict() for v in vendas])


@vendas_bp.post("")
def criar_venda():
    dados = payload_json()
    itens = dados.pop("itens", [])
    if not isinstance(itens, list):
        raise ErroValidacao(["'itens' deve ser uma lista"])
    venda = registrar_venda(dados, itens)
    return _ok(201, venda=venda.as_dict())


@vendas_bp.get("/<int:venda_id>")
def consultar_venda(venda_id):
    venda = db.get_or_404(Venda, venda_id)
    return _ok(venda=venda.as_dict())


@vendas_bp.put("/<int:venda_id>")
def editar_venda(venda_id):
    dados = payload_json()
    dados.pop("itens", None)
    venda = atualizar_venda(venda_id, dados)
    return _ok(venda=venda.as_dict())


@vendas_bp.delete("/<int:venda_id>")
def deletar_venda(venda_id):
    return _ok(**excluir_venda(venda_id))
