# assistec/services/eventos.py
"""
Evento ``peca_alterada`` (PartChanged).

O ledger não conhece cache nem tela: após cada ajuste ele apenas enfileira
a alteração na sessão. Quando a transação é confirmada (commit), o sinal é
disparado uma vez por peça, com o estoque final. Em rollback a fila é
descartada, então ninguém é notificado de um ajuste desfeito.

Assinatura dos receptores:
    def ao_alterar(peca_id, estoque):  ...
    peca_alterada.connect(ao_alterar)                # todas as peças
    peca_alterada.connect(ao_alterar, sender=7)      # só a peça 7

Exceções dos receptores são logadas e nunca sobem para o chamador.
"""

from __future__ import annotations

import logging
from typing import Dict

from blinker import Namespace
from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_sinais = Namespace()
peca_alterada = _sinais.signal("peca-alterada")

_CHAVE_FILA = "assistec_pecas_alteradas"


def enfileirar_peca_alterada(sess: Session, peca_id: int, estoque: int) -> None:
    fila: Dict[int, int] = sess.info.setdefault(_CHAVE_FILA, {})
    fila[peca_id] = estoque


def publicar_peca_alterada(peca_id: int, estoque: int) -> None:
    for receptor in peca_alterada.receivers_for(peca_id):
        try:
            receptor(peca_id, estoque=estoque)
        except Exception:
            logger.exception(
                "[Evento] Receptor de peca_alterada falhou (peça %s)", peca_id
            )


@event.listens_for(Session, "after_commit")
def _publicar_apos_commit(sess: Session) -> None:
    fila = sess.info.pop(_CHAVE_FILA, None)
    if not fila:
        return
    for peca_id, estoque in fila.items():
        publicar_peca_alterada(peca_id, estoque)


@event.listens_for(Session, "after_rollback")
def _descartar_apos_rollback(sess: Session) -> None:
    sess.info.pop(_CHAVE_FILA, None)
