"""ESC/POS Receipt Printing.

Renders orders into fixed-width receipt documents (32 columns on 58mm
paper, 48 on 80mm) and sends them to network printers over raw TCP.

Only the process started as the print server sends automatic prints;
manual prints are always sent. Sending never raises: connection and
socket failures are logged and reported as ``False``.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import Deque, List, Optional
from zoneinfo import ZoneInfo

from tabpos.core.config import settings
from tabpos.models.order import PAYMENT_LABELS, Order, local_created_at, to_money

logger = logging.getLogger(__name__)

PAPER_COLUMNS = {"58": 32, "80": 48}
DEFAULT_HEADER = "Order System"
DEFAULT_FOOTER = "Enjoy your meal!"


# ============================================================================
# ESC/POS Command Constants
# ============================================================================

class ESC:
    """ESC/POS command bytes."""
    INIT = b'\x1b\x40'  # Initialize printer
    CUT_PARTIAL = b'\x1d\x56\x01'  # Partial cut
    FEED_LINES = b'\x1b\x64'  # Feed n lines

    # Text formatting
    BOLD_ON = b'\x1b\x45\x01'
    BOLD_OFF = b'\x1b\x45\x00'
    DOUBLE_HEIGHT_ON = b'\x1b\x21\x10'
    NORMAL_SIZE = b'\x1b\x21\x00'

    # Text alignment
    ALIGN_LEFT = b'\x1b\x61\x00'
    ALIGN_CENTER = b'\x1b\x61\x01'

    # Character sets
    CHARSET_PC857 = b'\x1b\x74\x0d'  # Turkish


@dataclass
class ReceiptLine:
    """A line on a receipt."""
    text: str = ""
    bold: bool = False
    double_height: bool = False
    align: str = "left"  # left, center


@dataclass
class ReceiptDocument:
    """Rendered receipt, printable as text or ESC/POS bytes."""
    columns: int
    lines: List[ReceiptLine] = field(default_factory=list)

    def to_text(self) -> str:
        out = []
        for line in self.lines:
            out.append(line.text.center(self.columns).rstrip() if line.align == "center" else line.text)
        return "\n".join(out) + "\n"

    def to_escpos(self) -> bytes:
        data = BytesIO()
        data.write(ESC.INIT)
        data.write(ESC.CHARSET_PC857)
        for line in self.lines:
            data.write(ESC.ALIGN_CENTER if line.align == "center" else ESC.ALIGN_LEFT)
            if line.bold:
                data.write(ESC.BOLD_ON)
            if line.double_height:
                data.write(ESC.DOUBLE_HEIGHT_ON)
            data.write(_encode(line.text))
            data.write(b'\n')
            if line.bold:
                data.write(ESC.BOLD_OFF)
            if line.double_height:
                data.write(ESC.NORMAL_SIZE)
        data.write(b'\n')
        data.write(ESC.FEED_LINES + b'\x03')
        data.write(ESC.CUT_PARTIAL)
        return data.getvalue()


def _encode(text: str) -> bytes:
    # the lira sign has no code page 857 glyph
    text = text.replace("₺", "TL ")
    try:
        return text.encode('cp857')
    except UnicodeEncodeError:
        return text.encode('cp857', errors='replace')


def money(value) -> str:
    return f"₺{to_money(value)}"


class ReceiptRenderer:
    """Lays out orders for a given paper width."""

    def __init__(self, paper_size: str = "80", header_text: Optional[str] = None,
                 footer_text: Optional[str] = None, timezone: Optional[str] = None):
        self.paper_size = paper_size if paper_size in PAPER_COLUMNS else "80"
        self.columns = PAPER_COLUMNS[self.paper_size]
        self.header_text = header_text or DEFAULT_HEADER
        self.footer_text = footer_text or DEFAULT_FOOTER
        self.tz = ZoneInfo(timezone or settings.timezone)

    def _rule(self, char: str = "-") -> ReceiptLine:
        return ReceiptLine(text=char * self.columns)

    def _two_column(self, left: str, right: str) -> str:
        """``left`` padded so ``right`` ends at the last column."""
        room = self.columns - len(right) - 1
        if len(left) > room:
            left = left[:max(room - 2, 1)] + ".."
        return f"{left}{' ' * (self.columns - len(left) - len(right))}{right}"

    def _order_header(self, order: Order, table_label: Optional[str],
                      when: Optional[datetime]) -> List[ReceiptLine]:
        stamp = when or local_created_at(order, self.tz)
        table = f"{order.table_num}" if not table_label else f"{order.table_num} ({table_label})"
        return [
            ReceiptLine(text=self.header_text, bold=True, double_height=True, align="center"),
            self._rule("="),
            ReceiptLine(text=f"Order: #{order.short_id}"),
            ReceiptLine(text=f"Table: {table} - {order.user_name}"),
            ReceiptLine(text=stamp.strftime("%d.%m.%Y %H:%M")),
            self._rule("-"),
        ]

    def _item_lines(self, items: List[dict]) -> List[ReceiptLine]:
        lines = []
        for item in items:
            amount = item.get("amount")
            if amount is None:
                amount = to_money(item["price"]) * int(item["qty"])
            lines.append(ReceiptLine(text=self._two_column(f"{item['name']} x{item['qty']}", money(amount))))
            for option in item.get("options") or []:
                lines.append(ReceiptLine(text=f"  + {option}"))
            if item.get("note"):
                lines.append(ReceiptLine(text=f"  * {item['note']}"))
        return lines

    def render_receipt(self, order: Order, table_label: Optional[str] = None,
                       when: Optional[datetime] = None) -> ReceiptDocument:
        """Full receipt for an order."""
        doc = ReceiptDocument(columns=self.columns)
        doc.lines.extend(self._order_header(order, table_label, when))
        doc.lines.extend(self._item_lines(order.items or []))
        doc.lines.append(self._rule("-"))
        if to_money(order.discount_amount or 0) > 0:
            doc.lines.append(ReceiptLine(text=self._two_column("Subtotal", money(order.total))))
            doc.lines.append(ReceiptLine(text=self._two_column("Points discount", f"-{money(order.discount_amount)}")))
        doc.lines.append(ReceiptLine(text=self._two_column("TOTAL", money(order.amount_due)), bold=True))
        doc.lines.append(ReceiptLine(text=f"Payment: {PAYMENT_LABELS.get(order.payment_type, order.payment_type)}"))
        if order.note:
            doc.lines.append(ReceiptLine(text=f"Note: {order.note}"))
        doc.lines.append(self._rule("="))
        doc.lines.append(ReceiptLine(text=self.footer_text, align="center"))
        return doc

    def render_addendum(self, order: Order, lines: List[dict], title: str = "ADDENDUM",
                        table_label: Optional[str] = None,
                        when: Optional[datetime] = None) -> ReceiptDocument:
        """Kitchen slip for a change to an existing order.

        ``lines`` carry a signed quantity such as ``"+3"`` and the amount
        of the change.
        """
        doc = ReceiptDocument(columns=self.columns)
        doc.lines.append(ReceiptLine(text=f"*** {title} ***", bold=True, align="center"))
        doc.lines.extend(self._order_header(order, table_label, when or datetime.now(self.tz)))
        doc.lines.extend(self._item_lines(lines))
        doc.lines.append(self._rule("="))
        return doc


# ============================================================================
# Dispatch
# ============================================================================

@dataclass
class PrintJob:
    """A rendered document bound for one printer."""
    tenant_id: int
    order_id: str
    document: ReceiptDocument
    host: Optional[str] = None
    port: int = 9100
    manual: bool = False
    sent: Optional[bool] = None


class PrintDispatcher:
    """Sends print jobs; created once per process."""

    def __init__(self, print_server: bool = False, timeout: float = 5.0, history: int = 50):
        self.print_server = print_server
        self.timeout = timeout
        self.recent_jobs: Deque[PrintJob] = deque(maxlen=history)

    def should_auto_print(self, tenant_settings) -> bool:
        """Automatic printing needs this process to be the print server and the tenant to want it."""
        return bool(self.print_server and tenant_settings is not None and tenant_settings.auto_print_enabled)

    async def send(self, job: PrintJob) -> bool:
        """Deliver a job over raw TCP (port 9100 by default). Never raises."""
        self.recent_jobs.append(job)
        if not job.host:
            logger.warning(f"No printer address configured; job for order {job.order_id} not sent")
            job.sent = False
            return False

        payload = job.document.to_escpos()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(job.host, job.port), timeout=self.timeout,
            )
            writer.write(payload)
            await asyncio.wait_for(writer.drain(), timeout=self.timeout)
            writer.close()
            await writer.wait_closed()
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to print order {job.order_id} on {job.host}:{job.port}: {e}")
            job.sent = False
            return False

        logger.info(f"Printed order {job.order_id} on {job.host}:{job.port} ({len(payload)} bytes)")
        job.sent = True
        return True


dispatcher = PrintDispatcher(settings.print_server, settings.printer_timeout_seconds)
