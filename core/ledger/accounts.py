"""
계정과목/거래처 조회

전표 규칙이 필요로 하는 시스템 계정(재고, 조정, 환차, 자본 등)을
코드 우선, 이름 부분 일치 후순위로 조회.
필수 계정이 없으면 MissingAccountError (기본값 대체 없음).
"""

import logging
from collections.abc import Iterable

from core.config.loader import AccountLookupRule
from core.ledger.errors import MissingAccountError
from core.ledger.models import Account, LedgerParty, Partner
from core.ledger.types import DEFAULT_ACCOUNT_LOOKUP, AccountRole
from core.types import PartnerType

logger = logging.getLogger(__name__)


class ChartOfAccounts:
    """계정과목 + 거래처 통합 조회

    Args:
        accounts: 계정과목 목록
        partners: 거래처 목록
        factory_id: 현재 공장 ID (None이면 필터링 없음)
        overrides: 역할별 조회 규칙 덮어쓰기 (settings.yaml의 accounts 섹션)
    """

    def __init__(
        self,
        accounts: Iterable[Account],
        partners: Iterable[Partner] = (),
        factory_id: str | None = None,
        overrides: dict[str, AccountLookupRule] | None = None,
    ):
        self.factory_id = factory_id
        self._accounts = [a for a in accounts if self._visible(a.factory_id)]
        self._partners = [p for p in partners if self._visible(p.factory_id)]
        self._by_id: dict[str, LedgerParty] = {}
        for account in self._accounts:
            self._by_id[account.id] = account
        for partner in self._partners:
            self._by_id[partner.id] = partner

        self._rules: dict[AccountRole, AccountLookupRule] = {
            role: AccountLookupRule(codes=codes, names=names)
            for role, (codes, names) in DEFAULT_ACCOUNT_LOOKUP.items()
        }
        for role_name, rule in (overrides or {}).items():
            self._rules[AccountRole(role_name)] = rule

    def _visible(self, owner: str | None) -> bool:
        """공장 소속 필터 (소속 없음은 공용)"""
        return self.factory_id is None or owner is None or owner == self.factory_id

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts)

    @property
    def partners(self) -> list[Partner]:
        return list(self._partners)

    def get(self, entity_id: str) -> LedgerParty | None:
        """ID로 계정/거래처 조회"""
        return self._by_id.get(entity_id)

    def require(self, entity_id: str, label: str = "account") -> LedgerParty:
        """ID로 조회, 없으면 MissingAccountError"""
        entity = self._by_id.get(entity_id) if entity_id else None
        if entity is None:
            raise MissingAccountError(f"{label} '{entity_id}'")
        return entity

    def name_of(self, entity_id: str) -> str:
        """표시 이름 (없으면 ID 그대로)"""
        entity = self._by_id.get(entity_id)
        return entity.name if entity is not None else entity_id

    def find_by_code(self, code: str) -> Account | None:
        for account in self._accounts:
            if account.code == code:
                return account
        return None

    def find_role(self, role: AccountRole) -> Account | None:
        """역할 계정 조회 (코드 순서 우선 → 이름 부분 일치)"""
        rule = self._rules[role]
        for code in rule.codes:
            account = self.find_by_code(code)
            if account is not None:
                return account
        for name in rule.names:
            needle = name.lower()
            for account in self._accounts:
                if needle in account.name.lower():
                    return account
        return None

    def require_role(self, role: AccountRole) -> Account:
        """역할 계정 조회, 없으면 MissingAccountError

        Raises:
            MissingAccountError: 코드/이름 어느 규칙으로도 찾지 못한 경우
        """
        account = self.find_role(role)
        if account is None:
            rule = self._rules[role]
            raise MissingAccountError(
                role.value,
                f"codes={list(rule.codes)}, names={list(rule.names)}",
            )
        return account

    def parent_supplier_of(self, partner: Partner) -> Partner | None:
        """하위 공급처의 상위 공급처"""
        if partner.partner_type != PartnerType.SUB_SUPPLIER or not partner.parent_supplier_id:
            return None
        parent = self._by_id.get(partner.parent_supplier_id)
        return parent if isinstance(parent, Partner) else None
