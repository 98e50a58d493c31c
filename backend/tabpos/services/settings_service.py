"""Tenant settings and printer configuration."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.settings import Printer, TenantSettings

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "card_enabled", "cash_enabled", "pos_enabled", "sound_enabled",
    "waiter_enabled", "auto_print_enabled", "paper_size", "printer_name",
)
PRINTER_FIELDS = (
    "name", "ip_address", "port", "paper_size", "is_default", "is_active",
    "auto_print_categories", "header_text", "footer_text",
)


class SettingsService:
    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    # ========== TENANT SETTINGS ==========

    def get_settings(self) -> TenantSettings:
        """The tenant's settings row, created with defaults on first read."""
        current = (
            self.db.query(TenantSettings)
            .filter(TenantSettings.tenant_id == self.tenant_id)
            .first()
        )
        if current is None:
            current = TenantSettings(tenant_id=self.tenant_id)
            self.db.add(current)
            self.db.commit()
            self.db.refresh(current)
        return current

    def update_settings(self, **changes) -> TenantSettings:
        current = self.get_settings()
        try:
            for key in SETTINGS_FIELDS:
                if changes.get(key) is not None:
                    setattr(current, key, changes[key])
        except ValueError as e:
            self.db.rollback()
            raise ValidationFailed(str(e))
        if not current.enabled_payment_types():
            self.db.rollback()
            raise ValidationFailed("At least one payment method must stay enabled")
        self.db.commit()
        self.db.refresh(current)
        logger.info(f"Settings updated for tenant {self.tenant_id}: {sorted(k for k, v in changes.items() if v is not None)}")
        return current

    # ========== PRINTERS ==========

    def list_printers(self) -> List[Printer]:
        return (
            self.db.query(Printer)
            .filter(Printer.tenant_id == self.tenant_id)
            .order_by(Printer.is_default.desc(), Printer.name)
            .all()
        )

    def get_printer(self, printer_id: int) -> Printer:
        printer = (
            self.db.query(Printer)
            .filter(Printer.id == printer_id, Printer.tenant_id == self.tenant_id)
            .first()
        )
        if printer is None:
            raise NotFound("Printer", printer_id)
        return printer

    def default_printer(self) -> Optional[Printer]:
        """The active default printer, else any active one."""
        active = [p for p in self.list_printers() if p.is_active]
        return next((p for p in active if p.is_default), active[0] if active else None)

    def _unset_other_defaults(self, keep_id: Optional[int]) -> None:
        for other in self.list_printers():
            if other.id != keep_id and other.is_default:
                other.is_default = False

    def create_printer(self, **fields) -> Printer:
        if not (fields.get("name") or "").strip():
            raise ValidationFailed("Printer name is required")
        try:
            printer = Printer(
                tenant_id=self.tenant_id,
                **{k: v for k, v in fields.items() if k in PRINTER_FIELDS and v is not None},
            )
        except ValueError as e:
            raise ValidationFailed(str(e))
        self.db.add(printer)
        self.db.flush()
        if printer.is_default:
            self._unset_other_defaults(printer.id)
        self.db.commit()
        self.db.refresh(printer)
        logger.info(f"Printer added: {printer.name} ({printer.ip_address}:{printer.port})")
        return printer

    def update_printer(self, printer_id: int, **changes) -> Printer:
        printer = self.get_printer(printer_id)
        if "name" in changes and changes["name"] is not None and not changes["name"].strip():
            raise ValidationFailed("Printer name is required")
        try:
            for key in PRINTER_FIELDS:
                if changes.get(key) is not None:
                    setattr(printer, key, changes[key])
        except ValueError as e:
            self.db.rollback()
            raise ValidationFailed(str(e))
        if printer.is_default:
            self._unset_other_defaults(printer.id)
        self.db.commit()
        self.db.refresh(printer)
        return printer

    def delete_printer(self, printer_id: int) -> None:
        self.db.delete(self.get_printer(printer_id))
        self.db.commit()
