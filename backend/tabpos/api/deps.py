"""Route helpers shared across routers: printing and change notification."""

import logging
from typing import Iterable, List

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from tabpos.core.realtime import CHANNEL_TABLES, ws_manager
from tabpos.models.tenant import Tenant
from tabpos.services.order_service import PrintRequest
from tabpos.services.printer_service import PrintJob, ReceiptRenderer, dispatcher
from tabpos.services.settings_service import SettingsService
from tabpos.services.table_service import TableService

logger = logging.getLogger(__name__)


def dispatch_prints(
    background_tasks: BackgroundTasks,
    db: Session,
    tenant: Tenant,
    requests: Iterable[PrintRequest],
    manual: bool = False,
) -> List[str]:
    """Render print requests now and send them after the response.

    Automatic requests are dropped unless this process is the print server
    and the tenant has auto-print on. Returns the rendered texts.
    """
    requests = list(requests)
    if not requests:
        return []
    settings_service = SettingsService(db, tenant.id)
    tenant_settings = settings_service.get_settings()
    if not manual and not dispatcher.should_auto_print(tenant_settings):
        return []

    printer = settings_service.default_printer()
    renderer = ReceiptRenderer(
        paper_size=printer.paper_size if printer else tenant_settings.paper_size,
        header_text=(printer.header_text if printer else None) or tenant.name,
        footer_text=printer.footer_text if printer else None,
    )
    tables = TableService(db, tenant.id)

    texts = []
    for request in requests:
        label = tables.table_label(request.order.table_num)
        if request.lines is None:
            document = renderer.render_receipt(request.order, table_label=label)
        else:
            document = renderer.render_addendum(
                request.order, request.lines, title=request.title or "ADDENDUM", table_label=label,
            )
        job = PrintJob(
            tenant_id=tenant.id,
            order_id=request.order.id,
            document=document,
            host=printer.ip_address if printer else None,
            port=printer.port if printer else 9100,
            manual=manual,
        )
        background_tasks.add_task(dispatcher.send, job)
        texts.append(document.to_text())
    logger.debug(f"Queued {len(texts)} print jobs for tenant {tenant.id} (manual={manual})")
    return texts


def notify_change(
    background_tasks: BackgroundTasks,
    tenant_id: int,
    event: str = "UPDATE",
    record_id=None,
    tables: Iterable[str] = CHANNEL_TABLES,
) -> None:
    """Queue change notifications for the tenant's subscribers."""
    for table in tables:
        background_tasks.add_task(ws_manager.notify, tenant_id, table, event, record_id)
