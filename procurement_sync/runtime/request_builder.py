"""Turn extracted document data into a chain of ServiceNow requests.

Records that reference each other are wired through placeholders: the
supplier points at ``{{vendor.sys_id}}``, the contract at
``{{supplier.sys_id}}`` and so on. Already-linked records are referenced by
their real sys_id and drop the dependency.
"""

from __future__ import annotations

from typing import Any

from procurement_sync.config import Settings
from procurement_sync.domain.requests import HttpMethod, NewRequest
from procurement_sync.domain.sessions.entities import ExtractedData
from procurement_sync.tools.tables import table_url


def placeholder(entity_type: str, field: str = "sys_id") -> str:
    return f"{{{{{entity_type}.{field}}}}}"


def build_requests(extracted: ExtractedData, settings: Settings) -> list[NewRequest]:
    """Build the creation requests for every entity present in ``extracted``."""
    base = settings.servicenow_api_base

    def new(entity_type: str, body: dict[str, Any], depends_on: list[str] | None = None) -> NewRequest:
        return NewRequest(
            entity_type=entity_type,
            method=HttpMethod.POST,
            url=table_url(base, entity_type),
            body=body,
            depends_on=depends_on or [],
        )

    requests: list[NewRequest] = []
    vendor = extracted.vendor or {}
    vendor_sys_id = vendor.get("sys_id")
    vendor_ref = vendor_sys_id or placeholder("vendor")

    if extracted.vendor and not vendor_sys_id:
        requests.append(new("vendor", {
            "name": vendor.get("name"),
            "website": vendor.get("website"),
            "street": vendor.get("street"),
            "city": vendor.get("city"),
            "state": vendor.get("state"),
            "country": vendor.get("country"),
            "vendor_type": vendor.get("vendor_type"),
            "vendor_manager": settings.default_vendor_manager,
            "vendor": "true",
        }))

    if extracted.supplier and not extracted.linked_supplier_sys_id:
        supplier = extracted.supplier
        requests.append(new(
            "supplier",
            {
                "name": supplier.get("name"),
                "legal_name": supplier.get("legal_name") or supplier.get("name"),
                "u_vendor": vendor_ref,
                "web_site": supplier.get("web_site"),
                "street": supplier.get("street"),
                "city": supplier.get("city"),
                "state": supplier.get("state"),
                "country": supplier.get("country"),
            },
            None if vendor_sys_id else ["vendor"],
        ))

    if extracted.contract:
        contract = extracted.contract
        linked_supplier = extracted.linked_supplier_sys_id
        requests.append(new(
            "contract",
            {
                "short_description": contract.get("short_description"),
                "description": contract.get("description"),
                "vendor": vendor_ref,
                "supplier": linked_supplier or placeholder("supplier"),
                "starts": contract.get("starts"),
                "ends": contract.get("ends"),
                "payment_amount": contract.get("payment_amount"),
                "payment_schedule": contract.get("payment_schedule"),
                "invoice_payment_terms": contract.get("invoice_payment_terms"),
                "u_payment_method": contract.get("u_payment_method"),
                "renewable": contract.get("renewable"),
                "contract_administrator": settings.default_contract_administrator,
                "contract_model": contract.get("contract_model") or "Subscription",
                "approver": settings.default_approver,
                "vendor_contract": contract.get("vendor_contract") or "Identified by AI",
            },
            None if linked_supplier else ["supplier"],
        ))

    for line in extracted.expense_lines:
        requests.append(new(
            "expense_line",
            {
                "amount": line.get("amount"),
                "short_description": line.get("short_description"),
                "contract": placeholder("contract"),
            },
            ["contract"],
        ))

    if extracted.purchase_order:
        order = extracted.purchase_order
        linked_supplier = extracted.linked_supplier_sys_id
        requests.append(new(
            "purchase_order",
            {
                "display_name": order.get("display_name"),
                "supplier": linked_supplier or placeholder("supplier"),
                "total_amount": order.get("total_amount"),
                "status": order.get("status") or "draft",
                "purchase_order_type": order.get("purchase_order_type"),
                "created": order.get("created"),
            },
            None if linked_supplier else ["supplier"],
        ))

    for line in extracted.purchase_order_lines:
        requests.append(new(
            "purchase_order_line",
            {
                "purchase_order": placeholder("purchase_order"),
                "product_name": line.get("product_name"),
                "short_description": line.get("short_description"),
                "purchased_quantity": line.get("purchased_quantity"),
                "unit_price": line.get("unit_price"),
                "total_line_amount": line.get("total_line_amount"),
            },
            ["purchase_order"],
        ))

    return requests
