# farmacia/usecases/clientes.py
"""
UC: Cadastro de clientes.

- obter / listar / buscar(termo)
- criar / atualizar / remover

Obs.:
- CPF no formato 000.000.000-00 e único.
- Remover um cliente preserva as vendas (cliente_id passa a NULL).
"""

from __future__ import annotations

import sqlite3
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from farmacia.config import DB_PATH
from farmacia.domain.errors import NotFoundError, ValidationError
from farmacia.domain.models import Cliente
from farmacia.domain.policies import CPF_RE, EMAIL_RE, TELEFONE_RE, valida_data, valida_texto
from farmacia.infra.logger import log_transaction, notificar_auditoria, registrar_auditoria
from farmacia.infra.repositories import ClienteRepo
from farmacia.infra.views import init_db

CAMPOS = ("nome", "cpf", "email", "telefone", "data_nascimento")


class ClienteService:
    def __init__(self, db_path: str = DB_PATH, repo: Optional[ClienteRepo] = None,
                 auditoria: Optional[Callable] = registrar_auditoria):
        if repo is None:
            init_db(db_path)
            repo = ClienteRepo(db_path)
        self.repo = repo
        self.auditoria = auditoria

    def obter(self, id: int) -> Cliente:
        cli = self.repo.get(id)
        if cli is None:
            raise NotFoundError("Cliente", id)
        return cli

    def listar(self) -> List[Cliente]:
        return self.repo.list()

    def buscar(self, termo: str) -> List[Cliente]:
        """Filtra por nome (sem diferenciar maiúsculas) ou por trecho do CPF.

        Termos com menos de 2 caracteres devolvem a lista completa.
        """
        clientes = self.repo.list()
        t = (termo or "").strip().lower()
        if len(t) < 2:
            return clientes
        return [c for c in clientes if t in c.nome.lower() or t in c.cpf]

    def _validar(self, dados: Dict[str, Any], parcial: bool, id_atual: Optional[int] = None) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if not parcial or "nome" in dados:
            out["nome"] = valida_texto(dados.get("nome"), "nome")
        if not parcial or "cpf" in dados:
            cpf = valida_texto(dados.get("cpf"), "cpf")
            if not CPF_RE.match(cpf):
                raise ValidationError("CPF deve estar no formato 000.000.000-00", campo="cpf")
            existente = self.repo.get_by_cpf(cpf)
            if existente is not None and existente.id != id_atual:
                raise ValidationError(f"CPF {cpf} já cadastrado", campo="cpf")
            out["cpf"] = cpf
        if not parcial or "email" in dados:
            email = valida_texto(dados.get("email"), "email")
            if not EMAIL_RE.match(email):
                raise ValidationError("Email inválido", campo="email")
            out["email"] = email
        if "telefone" in dados:
            tel = valida_texto(dados.get("telefone"), "telefone", obrigatorio=False)
            if tel is not None and not TELEFONE_RE.match(tel):
                raise ValidationError("Telefone deve conter apenas números, espaços, parênteses e hífen",
                                      campo="telefone")
            out["telefone"] = tel
        if not parcial or "data_nascimento" in dados:
            nasc = valida_data(dados.get("data_nascimento"), "data_nascimento")
            if nasc > date.today():
                raise ValidationError("Data de nascimento no futuro", campo="data_nascimento")
            out["data_nascimento"] = nasc
        return out

    def _checar_campos(self, dados: Dict[str, Any]) -> None:
        desconhecidos = set(dados) - set(CAMPOS)
        if desconhecidos:
            raise ValidationError(
                f"Campos não editáveis: {', '.join(sorted(desconhecidos))}",
                campo=sorted(desconhecidos)[0],
            )

    def criar(self, dados: Dict[str, Any]) -> Cliente:
        try:
            self._checar_campos(dados)
            campos = self._validar(dados, parcial=False)
            cli = self.repo.create(campos)
        except sqlite3.IntegrityError as e:
            # corrida entre a checagem e o INSERT
            log_transaction("cliente_criar", {"cpf": dados.get("cpf")}, error=str(e))
            raise ValidationError(f"CPF {dados.get('cpf')} já cadastrado", campo="cpf")
        except Exception as e:
            log_transaction("cliente_criar", {"cpf": dados.get("cpf")}, error=str(e))
            raise
        log_transaction("cliente_criar", {"cpf": cli.cpf}, result=cli.id)
        notificar_auditoria(self.auditoria, "cliente_criado", {"id": cli.id, "nome": cli.nome})
        return cli

    def atualizar(self, id: int, parcial: Dict[str, Any]) -> Cliente:
        self.obter(id)
        self._checar_campos(parcial)
        campos = self._validar(parcial, parcial=True, id_atual=id)
        try:
            self.repo.update(id, campos)
        except sqlite3.IntegrityError:
            raise ValidationError(f"CPF {campos.get('cpf')} já cadastrado", campo="cpf")
        notificar_auditoria(self.auditoria, "cliente_editado", {"id": id, **campos})
        return self.obter(id)

    def remover(self, id: int) -> None:
        self.obter(id)
        self.repo.delete(id)
        log_transaction("cliente_remover", {"id": id}, result=id)
        notificar_auditoria(self.auditoria, "cliente_removido", {"id": id})
