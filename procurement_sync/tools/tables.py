# ServiceNow table per entity type, and the fields each record needs
# before ServiceNow will accept it.

TABLE_NAMES = {
    "vendor": "core_company",
    "supplier": "sn_fin_supplier",
    "contract": "ast_contract",
    "expense_line": "fm_expense_line",
    "service_offering": "service_offering",
    "asset": "alm_asset",
    "contract_asset": "clm_m2m_contract_asset",
    "cmdb_model": "cmdb_model",
    "purchase_order": "sn_shop_purchase_order",
    "purchase_order_line": "sn_shop_purchase_order_line",
    "currency_instance": "fx_currency2_instance",
    "supplier_product": "sn_shop_supplier_product",
}

REQUIRED_FIELDS = {
    "vendor": ["name"],
    "supplier": ["name"],
    "contract": ["short_description"],
    "expense_line": ["contract"],
    "service_offering": ["name"],
    "asset": ["name"],
    "contract_asset": ["contract", "asset"],
    "cmdb_model": ["name"],
    "purchase_order": ["supplier"],
    "purchase_order_line": ["purchase_order"],
    "currency_instance": ["amount", "currency"],
    "supplier_product": ["name"],
}


def table_url(api_base: str, entity_type: str) -> str:
    return f"{api_base.rstrip('/')}/table/{TABLE_NAMES[entity_type]}"
