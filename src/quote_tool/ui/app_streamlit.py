"""
Streamlit UI for the Quote Tool.

Features:
- Quote builder: products, plans, add-ons, custom requirements, discounts
- Live cost summary by category and by billing period
- Quote history with edit / delete of drafts, generate, duplicate, export
- Catalog browser and company profile
"""
import streamlit as st
import pandas as pd
from datetime import datetime

from quote_tool.config.settings import get_settings
from quote_tool.engine import PricingEngine
from quote_tool.engine.catalog import Frequency
from quote_tool.engine.models import (
    CustomRequirement, Discount, DiscountType, ProductConfiguration, QuoteSelection,
)
from quote_tool.lifecycle import LifecycleError, Quote, QuoteStatus
from quote_tool.services import export
from quote_tool.services.catalog_service import CatalogService, CompanyProfile
from quote_tool.services.quote_service import QuoteService


st.set_page_config(
    page_title="Quote Builder",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_services():
    """Get cached service instances."""
    settings = get_settings()
    return (
        CatalogService(settings.products_csv, settings.company_csv),
        QuoteService(settings.quotes_csv, settings.counters_json),
    )


try:
    catalog_service, quote_service = get_services()
    catalog = catalog_service.load_catalog()
    profile = catalog_service.get_company_profile()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()

engine = PricingEngine(catalog)
currency = profile.default_currency
FREQUENCIES = [f.label for f in Frequency]


def money(amount: float) -> str:
    return f"{currency} {amount:,.2f}"


def render_result(selection: QuoteSelection):
    """Summary table plus per-period metrics for a selection."""
    result = engine.calculate(selection)

    for warning in result.warnings:
        st.warning(warning)

    if result.lines:
        st.dataframe(pd.DataFrame([{
            'Section': line.section,
            'Item': line.name,
            'Description': line.description,
            'Frequency': line.frequency,
            'Cost': f"-{money(line.amount)}" if line.is_discount else money(line.amount),
        } for line in result.lines]), use_container_width=True, hide_index=True)

    m1, m2, m3, m4, m5 = st.columns(5)
    m1.metric("Total", money(result.breakdown.total))
    m2.metric("One-Time", money(result.periods.one_time))
    m3.metric("Monthly", money(result.periods.monthly))
    m4.metric("Quarterly", money(result.periods.quarterly))
    m5.metric("Yearly", money(result.periods.yearly))

    with st.expander("🔍 Calculation Trace"):
        st.text(result.get_trace_text())
    return result


# ============================================================================
# SIDEBAR: Company Context
# ============================================================================
with st.sidebar:
    st.header("🏢 Company")
    with st.container(border=True):
        st.markdown(f"**{profile.company_name}**")
        st.caption(profile.company_email)
        st.caption(f"Currency: {currency} | Quotes valid {profile.validity_days} days")

    st.divider()
    stats = quote_service.get_stats()
    st.success(f"📄 **{stats['generated']} Generated** / {stats['draft']} Draft")
    st.info(f"📚 **{len(catalog)} Products** in catalog")


# ============================================================================
# MAIN CONTENT: TABBED INTERFACE
# ============================================================================
st.title("Quote Builder")
st.caption(f"Pricing Engine Active | {datetime.now().strftime('%Y-%m-%d')}")

tab1, tab2, tab3, tab4 = st.tabs(["⚡ New Quote", "🗂️ Quote History", "📚 Catalog", "⚙️ Company Profile"])


# ============================================================================
# TAB 1: NEW QUOTE
# ============================================================================
with tab1:
    if 'selection' not in st.session_state:
        st.session_state.selection = QuoteSelection()
    selection: QuoteSelection = st.session_state.selection

    col1, col2 = st.columns([1.4, 1.6], gap="large")

    with col1:
        st.subheader("Add Items")

        with st.container(border=True):
            st.markdown("##### 📦 Product")
            products = catalog.products
            if products:
                p_idx = st.selectbox("Product", range(len(products)),
                                     format_func=lambda i: f"{products[i].name} ({products[i].category or 'Uncategorized'})")
                product = products[p_idx]
                plan = None
                if product.pricing_plans:
                    plans = product.pricing_plans
                    plan = plans[st.selectbox("Plan", range(len(plans)), format_func=lambda i: plans[i].name)]
                option = None
                if plan and plan.pricing_options:
                    options = plan.pricing_options
                    option = options[st.selectbox("Billing", range(len(options)),
                                                  format_func=lambda i: f"{options[i].frequency} - {money(options[i].price)}")]
                add_on_idx = st.multiselect("Add-ons", range(len(product.add_ons)),
                                            format_func=lambda i: f"{product.add_ons[i].name} ({money(product.add_ons[i].additional_cost)} {product.add_ons[i].frequency})")
                add_ons = [product.add_ons[i] for i in add_on_idx]
                include_setup = st.checkbox(f"Include setup fee ({money(product.setup_fee)})", value=product.setup_fee > 0)
                d1, d2 = st.columns(2)
                discount_type = d1.selectbox("Discount type", ["percentage", "fixed"], key="cfg_dtype")
                discount_value = d2.number_input("Discount", min_value=0.0, value=0.0, key="cfg_dval")

                if st.button("➕ Add Product", type="primary", disabled=option is None):
                    selection.product_configurations.append(ProductConfiguration(
                        product_id=product.id,
                        plan_id=plan.id,
                        frequency=option.frequency,
                        selected_add_on_ids=[a.id for a in add_ons],
                        include_setup_cost=include_setup,
                        discount_type=DiscountType.parse(discount_type),
                        discount_value=discount_value,
                    ))
                    st.rerun()
            else:
                st.info("The catalog is empty. Add products through the API first.")

        with st.expander("🧩 Custom Requirement"):
            name = st.text_input("Name", key="req_name")
            description = st.text_area("Description", key="req_desc", height=68)
            r1, r2 = st.columns(2)
            price = r1.number_input("Price", min_value=0.0, value=0.0, key="req_price")
            frequency = r2.selectbox("Frequency", FREQUENCIES, index=FREQUENCIES.index("One-time"), key="req_freq")
            r3, r4 = st.columns(2)
            req_dtype = r3.selectbox("Discount type", ["percentage", "fixed"], key="req_dtype")
            req_dval = r4.number_input("Discount", min_value=0.0, value=0.0, key="req_dval")
            if st.button("➕ Add Requirement"):
                selection.custom_requirements.append(CustomRequirement(
                    name=name, description=description, price=price, frequency=frequency,
                    discount_type=DiscountType.parse(req_dtype), discount_value=req_dval,
                ))
                st.rerun()

        with st.expander("🏷️ Overall Discount"):
            o1, o2, o3 = st.columns(3)
            overall_type = o1.selectbox("Type", ["percentage", "fixed"], key="all_dtype")
            overall_value = o2.number_input("Value", min_value=0.0, value=0.0, key="all_dval")
            overall_freq = o3.selectbox("Applies to", ["All"] + FREQUENCIES, key="all_freq")
            overall_desc = st.text_input("Description", key="all_desc")
            if st.button("➕ Add Discount"):
                selection.discounts.append(Discount(
                    type=DiscountType.parse(overall_type),
                    value=overall_value,
                    description=overall_desc,
                    discount_frequency=None if overall_freq == "All" else overall_freq,
                ))
                st.rerun()

    with col2:
        editing: Quote = st.session_state.get('editing') or Quote()
        st.subheader(f"Editing {editing.quote_reference or editing.id}" if editing.id else "Quote Summary")
        with st.container(border=True):
            if selection.product_configurations or selection.custom_requirements or selection.discounts:
                items = (
                    [('product_configurations', i, f"📦 {c.product_id} / plan {c.plan_id} ({c.frequency})")
                     for i, c in enumerate(selection.product_configurations)]
                    + [('custom_requirements', i, f"🧩 {r.name or 'Custom Requirement'}")
                       for i, r in enumerate(selection.custom_requirements)]
                    + [('discounts', i, f"🏷️ {d.description or d.type.value} {d.value:g}")
                       for i, d in enumerate(selection.discounts)]
                )
                for section, index, label in items:
                    i1, i2 = st.columns([6, 1])
                    i1.caption(label)
                    if i2.button("✖", key=f"remove_{section}_{index}"):
                        st.session_state.selection = selection.without(section, index)
                        st.rerun()

                render_result(selection)
                if st.button("🗑️ Clear", use_container_width=True):
                    st.session_state.selection = QuoteSelection()
                    st.session_state.editing = None
                    st.rerun()
            else:
                st.info("🛒 Nothing selected yet")

        with st.form("client_details"):
            st.markdown("##### 👤 Client")
            c1, c2 = st.columns(2)
            client_name = c1.text_input("Client Name", value=editing.client_name)
            client_email = c2.text_input("Client Email", value=editing.client_email)
            company_name = c1.text_input("Company", value=editing.company_name)
            phone_number = c2.text_input("Phone", value=editing.phone_number)
            quote_reference = st.text_input("Quote Reference", value=editing.quote_reference)
            project_timeline = st.text_input("Project Timeline", value=editing.project_timeline)
            additional_notes = st.text_area("Additional Notes", value=editing.additional_notes)
            b1, b2 = st.columns(2)
            save_draft = b1.form_submit_button("💾 Save Draft")
            save_generate = b2.form_submit_button("📄 Generate", type="primary")

        if save_draft or save_generate:
            quote = Quote(
                client_name=client_name, client_email=client_email,
                company_name=company_name, phone_number=phone_number,
                quote_reference=quote_reference, project_timeline=project_timeline,
                additional_notes=additional_notes,
                product_configurations=selection.product_configurations,
                custom_requirements=selection.custom_requirements,
                discounts=selection.discounts,
            )
            try:
                if editing.id:
                    saved = quote_service.update_quote(editing.id, quote)
                    if save_generate:
                        saved = quote_service.generate_quote(saved.id)
                else:
                    saved = quote_service.create_quote(quote, generate=save_generate)
                st.session_state.selection = QuoteSelection()
                st.session_state.editing = None
                st.toast(f"Saved quote {saved.quotation_number or saved.id}")
                st.rerun()
            except (LifecycleError, ValueError) as e:
                st.error(str(e))


# ============================================================================
# TAB 2: QUOTE HISTORY
# ============================================================================
with tab2:
    st.subheader("🗂️ Quote History")

    h1, h2, h3 = st.columns([2, 1, 1])
    search = h1.text_input("Search", placeholder="Search quotes...", label_visibility="collapsed")
    field = h2.selectbox("Field", ["quoteReference", "clientName", "companyName", "clientEmail", "phoneNumber"],
                         label_visibility="collapsed")
    status = h3.selectbox("Status", ["all", "draft", "generated"], label_visibility="collapsed")

    quotes = quote_service.list_quotes(status=status, search=search or None, search_field=field)
    totals = {q.id: engine.compute_total_breakdown(q.selection).total for q in quotes}
    st.dataframe(export.quotes_to_frame(quotes, totals), use_container_width=True, hide_index=True)

    if quotes:
        q_idx = st.selectbox("Open quote", range(len(quotes)),
                             format_func=lambda i: f"{quotes[i].quotation_number or 'DRAFT'} | {quotes[i].quote_reference} | {quotes[i].client_name}")
        chosen = quotes[q_idx]
        result = render_result(chosen.selection)

        is_generated = chosen.status is QuoteStatus.GENERATED
        a1, a2, a3, a4, a5, a6 = st.columns(6)
        if a1.button("📄 Generate", disabled=is_generated):
            try:
                quote_service.generate_quote(chosen.id)
                st.rerun()
            except LifecycleError as e:
                st.error(str(e))
        if a2.button("✏️ Edit", disabled=is_generated):
            st.session_state.selection = chosen.selection
            st.session_state.editing = chosen
            st.toast("Loaded into the New Quote tab")
            st.rerun()
        if a3.button("🗑️ Delete", disabled=is_generated):
            try:
                quote_service.delete_quote(chosen.id)
                st.rerun()
            except LifecycleError as e:
                st.error(str(e))
        if a4.button("📑 Duplicate"):
            copy = quote_service.duplicate_quote(chosen.id)
            st.toast(f"Created draft {copy.id}")
            st.rerun()
        a5.download_button("📥 CSV", data=export.export_csv(chosen, result, profile),
                           file_name=export.export_filename(chosen, "csv"), mime="text/csv")
        a6.download_button("📥 Excel", data=export.export_excel(chosen, result, profile),
                           file_name=export.export_filename(chosen, "xlsx"))


# ============================================================================
# TAB 3: CATALOG
# ============================================================================
with tab3:
    st.subheader("📚 Product Catalog")
    category = st.selectbox("Category", ["ALL"] + catalog.categories())
    rows = []
    for product in catalog:
        if category != "ALL" and (product.category or "Uncategorized") != category:
            continue
        for plan in product.pricing_plans:
            for option in plan.pricing_options:
                rows.append({
                    'Product': product.name,
                    'Category': product.category,
                    'Plan': plan.name,
                    'Frequency': option.frequency,
                    'Price': option.price,
                    'Setup Fee': product.setup_fee,
                    'Add-ons': ", ".join(a.name for a in product.add_ons),
                })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    st.caption(f"Total Products: {len(catalog):,}")


# ============================================================================
# TAB 4: COMPANY PROFILE
# ============================================================================
with tab4:
    with st.form("company_profile"):
        company = st.text_input("Company Name", value=profile.company_name)
        email = st.text_input("Email", value=profile.company_email)
        phone = st.text_input("Phone", value=profile.phone)
        address = st.text_area("Address", value=profile.address)
        p1, p2, p3 = st.columns(3)
        currency_label = p1.text_input("Currency", value=profile.default_currency)
        tax_rate = p2.number_input("Tax Rate (%)", min_value=0.0, value=profile.default_tax_rate)
        validity = p3.number_input("Validity (days)", min_value=1, value=profile.validity_days, step=1)
        terms = st.text_area("Terms & Conditions", value=profile.terms_and_conditions)
        footer = st.text_input("Footer Message", value=profile.footer_message)
        if st.form_submit_button("💾 Save Profile"):
            catalog_service.save_company_profile(CompanyProfile(
                company_name=company, company_email=email, phone=phone, address=address,
                default_currency=currency_label, default_tax_rate=tax_rate,
                terms_and_conditions=terms, footer_message=footer, validity_days=int(validity),
            ))
            st.toast("Profile saved")
            st.rerun()
