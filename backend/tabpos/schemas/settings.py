"""Tenant, tenant settings and printer schemas."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TenantPublic(BaseModel):
    slug: str
    name: str
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    model_config = {"from_attributes": True}


class TenantSettingsResponse(BaseModel):
    card_enabled: bool
    cash_enabled: bool
    pos_enabled: bool
    sound_enabled: bool
    waiter_enabled: bool
    auto_print_enabled: bool
    paper_size: str
    printer_name: Optional[str] = None
    enabled_payment_types: List[str]


class TenantSettingsUpdate(BaseModel):
    card_enabled: Optional[bool] = None
    cash_enabled: Optional[bool] = None
    pos_enabled: Optional[bool] = None
    sound_enabled: Optional[bool] = None
    waiter_enabled: Optional[bool] = None
    auto_print_enabled: Optional[bool] = None
    paper_size: Optional[Literal["58", "80"]] = None
    printer_name: Optional[str] = Field(default=None, max_length=100)


class PrinterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    port: int = Field(default=9100, ge=1, le=65535)
    paper_size: Literal["58", "80"] = "80"
    is_default: bool = False
    is_active: bool = True
    auto_print_categories: List[int] = []
    header_text: Optional[str] = None
    footer_text: Optional[str] = None


class PrinterUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    paper_size: Optional[Literal["58", "80"]] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    auto_print_categories: Optional[List[int]] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None


class PrinterResponse(BaseModel):
    id: int
    name: str
    ip_address: Optional[str] = None
    port: int
    paper_size: str
    is_default: bool
    is_active: bool
    auto_print_categories: List[int] = []
    header_text: Optional[str] = None
    footer_text: Optional[str] = None

    model_config = {"from_attributes": True}
