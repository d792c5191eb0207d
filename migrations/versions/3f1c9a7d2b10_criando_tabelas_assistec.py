"""Criando tabelas de clientes, técnicos, peças, ordens, itens e movimentações

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-18 10:12:41.318204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c9a7d2b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # --- 1. Cadastros ---
    op.create_table('clientes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=120), nullable=False),
        sa.Column('telefone', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('endereco', sa.String(length=255), nullable=True),
        sa.Column('cpf', sa.String(length=20), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('tecnicos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=120), nullable=False),
        sa.Column('telefone', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('endereco', sa.String(length=255), nullable=True),
        sa.Column('cpf', sa.String(length=20), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # --- 2. Estoque ---
    op.create_table('pecas_manutencao',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(length=120), nullable=False),
        sa.Column('fabricante', sa.String(length=100), nullable=True),
        sa.Column('modelo', sa.String(length=100), nullable=True),
        sa.Column('codigo_fabricante', sa.String(length=50), nullable=True),
        sa.Column('preco_unitario', sa.Float(), nullable=False),
        sa.Column('estoque', sa.Integer(), nullable=False),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.Column('atualizado_em', sa.DateTime(), nullable=False),
        sa.CheckConstraint('estoque >= 0', name='ck_pecas_estoque_nao_negativo'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('movimentacoes_estoque',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('peca_id', sa.Integer(), nullable=False),
        sa.Column('tipo', sa.String(length=10), nullable=False),
        sa.Column('quantidade', sa.Integer(), nullable=False),
        sa.Column('estoque_resultante', sa.Integer(), nullable=False),
        sa.Column('referencia_tipo', sa.String(length=30), nullable=True),
        sa.Column('referencia_id', sa.Integer(), nullable=True),
        sa.Column('observacao', sa.Text(), nullable=True),
        sa.Column('chave', sa.String(length=120), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['peca_id'], ['pecas_manutencao.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chave')
    )
    op.create_index('ix_movimentacoes_estoque_peca_id', 'movimentacoes_estoque', ['peca_id'])

    # --- 3. Ordens de serviço ---
    op.create_table('ordens_servico',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cliente_id', sa.Integer(), nullable=False),
        sa.Column('tecnico_id', sa.Integer(), nullable=True),
        sa.Column('dispositivo', sa.String(length=120), nullable=False),
        sa.Column('descricao_problema', sa.Text(), nullable=False),
        sa.Column('diagnostico', sa.Text(), nullable=True),
        sa.Column('servico_realizado', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('valor_manutencao', sa.Float(), nullable=True),
        sa.Column('data_abertura', sa.DateTime(), nullable=False),
        sa.Column('data_conclusao', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ),
        sa.ForeignKeyConstraint(['tecnico_id'], ['tecnicos.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('itens_ordem',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ordem_id', sa.Integer(), nullable=False),
        sa.Column('peca_id', sa.Integer(), nullable=True),
        sa.Column('nome_item', sa.String(length=120), nullable=False),
        sa.Column('quantidade', sa.Integer(), nullable=False),
        sa.Column('preco_unitario', sa.Float(), nullable=False),
        sa.Column('is_from_estoque', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['ordem_id'], ['ordens_servico.id'], ),
        sa.ForeignKeyConstraint(['peca_id'], ['pecas_manutencao.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_itens_ordem_ordem_id', 'itens_ordem', ['ordem_id'])
    op.create_index('ix_itens_ordem_peca_id', 'itens_ordem', ['peca_id'])


def downgrade():
    op.drop_index('ix_itens_ordem_peca_id', table_name='itens_ordem')
    op.drop_index('ix_itens_ordem_ordem_id', table_name='itens_ordem')
    op.drop_table('itens_ordem')
    op.drop_table('ordens_servico')
    op.drop_index('ix_movimentacoes_estoque_peca_id', table_name='movimentacoes_estoque')
    op.drop_table('movimentacoes_estoque')
    op.drop_table('pecas_manutencao')
    op.drop_table('tecnicos')
    op.drop_table('clientes')
