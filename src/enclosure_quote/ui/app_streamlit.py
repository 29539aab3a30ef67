"""
Streamlit UI for the enclosure quote tool.

Features:
- Calculator with live itemized breakdown
- Save quote and download PDF
- Stored quotes browser with status change, PDF and delete
- Reference data editor and price matrix report
"""
import streamlit as st
import pandas as pd
from datetime import datetime

from enclosure_quote.config.logging import configure_logging
from enclosure_quote.config.settings import get_settings
from enclosure_quote.data.price_report import build_price_report
from enclosure_quote.engine import PricingEngine, RoofConfiguration, CustomSurcharge, PricingError
from enclosure_quote.engine.models import CATEGORIES, KINDS, FRONT_TYPES, SURFACE_TYPES, INSTALLATION_TYPES
from enclosure_quote.render.formatting import format_price
from enclosure_quote.render.quote_pdf import generate_pdf
from enclosure_quote.services.quote_service import QuoteService, Customer, Dealer, STATUSES
from enclosure_quote.services.reference_service import ReferenceService, ReferenceDataError
from enclosure_quote.services.validation import validate_configuration


st.set_page_config(
    page_title="Enclosure Quote",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_engine():
    """Get cached engine instance."""
    return PricingEngine(settings=get_settings())


@st.cache_resource
def get_quote_service():
    settings = get_settings()
    return QuoteService(settings.quotes_dir, prefix=settings.quote_prefix)


@st.cache_resource
def get_reference_service():
    return ReferenceService(get_settings().data_dir)


try:
    configure_logging()
    engine = get_engine()
    quote_service = get_quote_service()
    reference_service = get_reference_service()
except (OSError, ValueError, KeyError) as e:
    st.error(f"System Error: {e}")
    st.stop()

data = engine.reference_data

SURFACE_LABELS = {
    'standard': "Standard",
    'bronze_elox': "Bronze anodized",
    'anthracite_elox': "Anthracite anodized",
    'ral': "RAL colour",
}
INSTALLATION_LABELS = {
    'none': "No installation",
    'cz': "Installation CZ",
    'eu': "Installation EU",
    'free': "Free installation",
}


def front_inputs(label: str, key: str) -> dict:
    """Inputs for one front; returns configuration fields."""
    present = st.checkbox(f"{label} present", value=True, key=f"{key}_present")
    values = {f"has_{key}": present}
    if not present:
        return values

    front_type = st.selectbox(f"{label} type", FRONT_TYPES, key=f"{key}_type")
    values[f"{key}_type"] = front_type
    if front_type == 'doors':
        c1, c2 = st.columns(2)
        values[f"{key}_doors_width"] = c1.number_input("Door width (mm)", value=900, step=50, key=f"{key}_dw")
        values[f"{key}_doors_height"] = c2.number_input("Door height (mm)", value=1800, step=50, key=f"{key}_dh")
        values[f"{key}_doors_large"] = st.checkbox("Doors over 1 m", key=f"{key}_large")
        values[f"{key}_lock"] = st.checkbox("Door lock", key=f"{key}_lock")
    elif front_type == 'flap':
        values[f"{key}_flap_height"] = st.number_input("Flap height (mm)", value=300, step=50, key=f"{key}_fh")
    return values


def _cell(value):
    if isinstance(value, float) and pd.isna(value):
        return None
    return value.item() if hasattr(value, 'item') else value


def changed_rows(original: list[dict], edited: pd.DataFrame, fields: list[str]) -> dict[int, dict]:
    """Row position -> changed fields, comparing an edited table with its source rows."""
    changes = {}
    for i, row in edited.reset_index(drop=True).iterrows():
        updates = {f: _cell(row[f]) for f in fields if _cell(row[f]) != original[i].get(f)}
        if updates:
            changes[i] = updates
    return changes


def save_reference_changes(save) -> bool:
    """Run a reference data write, report the outcome and reload the engine."""
    try:
        warnings = save()
    except ReferenceDataError as e:
        for error in e.errors:
            st.error(error)
        return False
    except ValueError as e:
        st.error(str(e))
        return False
    for warning in warnings:
        st.warning(warning)
    engine.reload_data()
    st.toast("Reference data saved")
    return True


# ============================================================================
# SIDEBAR: Customer
# ============================================================================
with st.sidebar:
    st.header("👤 Customer")
    with st.container(border=True):
        customer_name = st.text_input("Name")
        customer_email = st.text_input("E-mail")
        customer_phone = st.text_input("Phone")
        customer_address = st.text_area("Address", height=70)

    with st.expander("Dealer"):
        dealer_name = st.text_input("Dealer name")
        dealer_contact = st.text_input("Dealer contact")

    prepared_by = st.text_input("Prepared by")
    validity_months = st.number_input("Validity (months)", min_value=1, value=get_settings().default_validity_months)


st.title("Enclosure Quote")
st.caption(f"{len(data.roof_types)} roof types | {data.price_count()} prices | {datetime.now().strftime('%Y-%m-%d')}")

tab1, tab2, tab3 = st.tabs(["⚡ Calculator", "📄 Quotes", "📊 Reference Data"])


# ============================================================================
# TAB 1: CALCULATOR
# ============================================================================
with tab1:
    col1, col2 = st.columns([1.8, 1.2], gap="large")

    with col1:
        roof_codes = [rt.code for rt in data.roof_types]
        roof_code = st.selectbox(
            "Roof type", roof_codes,
            format_func=lambda code: data.roof_type(code).name,
        )
        roof_type = data.roof_type(roof_code)

        c1, c2 = st.columns(2)
        width = c1.number_input(
            "Width (mm)", min_value=roof_type.min_width, max_value=roof_type.max_width,
            value=roof_type.min_width, step=10,
        )
        modules = c2.number_input(
            "Modules", min_value=roof_type.min_modules, max_value=roof_type.max_modules, value=roof_type.min_modules,
        )

        with st.expander("📐 Dimensions"):
            custom_length_on = st.checkbox("Custom length")
            custom_length = st.number_input("Length (mm)", value=4336, step=10, disabled=not custom_length_on)
            custom_height_on = st.checkbox("Custom height")
            custom_height = st.number_input("Height (mm)", value=720, step=10, disabled=not custom_height_on)

        with st.expander("🔷 Polycarbonate"):
            solid_poly_modules = st.number_input("Solid polycarbonate modules", min_value=0, max_value=int(modules))
            solid_poly_big_front = st.checkbox("Solid polycarbonate in big front")
            solid_poly_small_front = st.checkbox("Solid polycarbonate in small front")
            solid_poly_skirts = st.checkbox("Solid polycarbonate in skirts", disabled=not roof_type.has_skirts)
            color_change_modules = st.number_input("Colour change modules", min_value=0, max_value=int(modules))
            color_change_big_front = st.checkbox("Colour change in big front")
            color_change_small_front = st.checkbox("Colour change in small front")

        with st.expander("🚪 Fronts and doors"):
            big_front = front_inputs("Big front", "big_front")
            st.divider()
            small_front = front_inputs("Small front", "small_front")
            st.divider()
            has_side_doors = st.checkbox("Side doors")
            side_door_lock = st.checkbox("Side door lock", disabled=not has_side_doors)

        with st.expander("🛤️ Rails, construction and surface"):
            walking_rails = st.checkbox("Walking rails")
            bidirectional_rails = st.checkbox("Bidirectional rails")
            rail_extension = st.number_input("Rail extension (mm)", min_value=0, step=100)
            mountain_reinforcement = st.checkbox("Mountain area reinforcement")
            segment_locking = st.checkbox("Segment locking")
            surface_type = st.selectbox("Surface", SURFACE_TYPES, format_func=SURFACE_LABELS.get)
            ral_color = st.text_input("RAL colour", disabled=surface_type != 'ral')

        with st.expander("➕ Other surcharges"):
            custom_df = st.data_editor(
                pd.DataFrame([{"name": "", "price": 0}]),
                num_rows="dynamic",
                use_container_width=True,
                hide_index=True,
                key="custom_surcharges",
            )

        with st.expander("🚚 Transport, installation and discount", expanded=True):
            c1, c2 = st.columns(2)
            include_transport = c1.checkbox("Include transport", value=True)
            transport_km = c1.number_input("Distance (km)", min_value=0.0, step=10.0)
            transport_rate = c2.number_input("Rate per km", min_value=0.0, value=float(get_settings().default_transport_rate))
            installation_type = c2.selectbox("Installation", INSTALLATION_TYPES, format_func=INSTALLATION_LABELS.get)
            discount_percent = st.number_input("Discount (%)", min_value=0.0, max_value=100.0, step=1.0)

    configuration = RoofConfiguration(
        roof_type_code=roof_code,
        width=int(width),
        modules=int(modules),
        use_standard_length=not custom_length_on,
        custom_length=int(custom_length) if custom_length_on else None,
        use_standard_height=not custom_height_on,
        custom_height=int(custom_height) if custom_height_on else None,
        solid_poly_modules=int(solid_poly_modules),
        solid_poly_big_front=solid_poly_big_front,
        solid_poly_small_front=solid_poly_small_front,
        solid_poly_skirts=solid_poly_skirts,
        color_change_modules=int(color_change_modules),
        color_change_big_front=color_change_big_front,
        color_change_small_front=color_change_small_front,
        has_side_doors=has_side_doors,
        side_door_lock=side_door_lock,
        walking_rails=walking_rails,
        bidirectional_rails=bidirectional_rails,
        rail_extension=int(rail_extension),
        mountain_reinforcement=mountain_reinforcement,
        segment_locking=segment_locking,
        surface_type=surface_type,
        ral_color=ral_color or None,
        custom_surcharges=[
            CustomSurcharge(name=str(row['name']), price=float(row['price']))
            for _, row in custom_df.iterrows()
            if pd.notna(row['name']) and pd.notna(row['price'])
        ],
        include_transport=include_transport,
        transport_km=transport_km,
        transport_rate=transport_rate,
        installation_type=installation_type,
        discount_percent=discount_percent,
        **big_front,
        **small_front,
    )

    with col2:
        st.subheader("Quote Summary")

        validation = validate_configuration(configuration, roof_type)
        result = None
        with st.container(border=True):
            for error in validation.errors:
                st.error(error)
            for warning in validation.warnings:
                st.warning(warning)

            if validation.valid:
                try:
                    result = engine.calculate(configuration)
                except PricingError as e:
                    st.error(str(e))

            if result:
                m1, m2 = st.columns(2)
                m1.metric("Final price", format_price(result.final_price))
                m2.metric("Roof price", format_price(result.roof_price))

                st.caption(
                    f"Standard length {result.standard_length} mm | standard height {result.standard_height} mm"
                )
                st.divider()
                st.markdown(f"Base price: **{format_price(result.base_price)}**")
                st.markdown(f"Surcharges: **{format_price(result.surcharges_total)}**")
                st.markdown(f"Transport: **{format_price(result.transport_price)}**")
                st.markdown(f"Installation: **{format_price(result.install_price)}**")
                if result.discount_amount:
                    st.markdown(f":green[**Discount: -{format_price(result.discount_amount)}**]")

                st.divider()
                if st.button("💾 Save Quote", type="primary", use_container_width=True):
                    try:
                        quote = quote_service.create_quote(
                            configuration=configuration,
                            result=result,
                            customer=Customer(
                                name=customer_name,
                                email=customer_email or None,
                                phone=customer_phone or None,
                                address=customer_address or None,
                            ),
                            dealer=Dealer(name=dealer_name, contact=dealer_contact or None) if dealer_name else None,
                            roof_type=roof_type,
                            validity_months=int(validity_months),
                            prepared_by=prepared_by or None,
                        )
                        st.session_state.last_quote = quote.number
                        st.toast(f"Quote {quote.number} saved")
                    except ValueError as e:
                        st.error(str(e))

                last_number = st.session_state.get('last_quote')
                if last_number:
                    saved = quote_service.get_quote(last_number)
                    if saved:
                        st.download_button(
                            f"📥 {saved.number}.pdf",
                            data=generate_pdf(saved),
                            file_name=f"{saved.number}.pdf",
                            mime="application/pdf",
                            use_container_width=True,
                        )

    if result:
        st.markdown("### 📝 Line Items")
        items_df = pd.DataFrame([{
            'Item': item.name,
            'Description': item.description or "",
            'Quantity': f"{item.quantity:g} {item.unit or ''}" if item.quantity is not None else "",
            'Price': item.price,
        } for item in result.items], columns=['Item', 'Description', 'Quantity', 'Price'])
        st.dataframe(items_df, use_container_width=True, hide_index=True)
        st.download_button(
            "📥 CSV",
            data=items_df.to_csv(index=False),
            file_name=f"calculation_{roof_code}_{int(width)}_{int(modules)}.csv",
            mime="text/csv",
        )

        with st.expander("🔍 Calculation Trace"):
            st.code(result.get_trace_text())


# ============================================================================
# TAB 2: QUOTES
# ============================================================================
with tab2:
    c1, c2 = st.columns([2, 1])
    search = c1.text_input("Search quotes", placeholder="Number, customer or e-mail...", label_visibility="collapsed")
    status = c2.selectbox("Status", ["all", "DRAFT", "SENT", "ACCEPTED", "REJECTED", "EXPIRED"], label_visibility="collapsed")

    quotes, total = quote_service.list_quotes(status=status, search=search or None, limit=200)
    if quotes:
        st.dataframe(pd.DataFrame([{
            'Number': q.number,
            'Status': q.status,
            'Customer': q.customer.name,
            'Roof': q.roof_type_name or q.roof_type_code,
            'Width': q.configuration.width,
            'Modules': q.configuration.modules,
            'Final price': q.final_price,
            'Created': q.created_at[:10],
            'Valid until': q.valid_until[:10],
        } for q in quotes]), use_container_width=True, hide_index=True)
        st.caption(f"Showing {len(quotes)} of {total}")

        st.markdown("### ✏️ Quote Actions")
        number = st.selectbox("Quote", [q.number for q in quotes], key="quote_action_number")
        selected = next(q for q in quotes if q.number == number)

        a1, a2, a3 = st.columns(3)
        with a1:
            new_status = st.selectbox("Status", STATUSES, index=STATUSES.index(selected.status), key="quote_action_status")
            if st.button("💾 Update Status", disabled=new_status == selected.status, use_container_width=True):
                quote_service.update_quote(number, {'status': new_status})
                st.toast(f"{number} marked {new_status}")
                st.rerun()
        with a2:
            st.download_button(
                "📄 Download PDF",
                data=generate_pdf(selected),
                file_name=f"{number}.pdf",
                mime="application/pdf",
                use_container_width=True,
                key="quote_action_pdf",
            )
        with a3:
            confirm = st.checkbox(f"Confirm deletion of {number}", key="quote_action_confirm")
            if st.button("🗑️ Delete", disabled=not confirm, use_container_width=True):
                quote_service.delete_quote(number)
                st.toast(f"Deleted {number}")
                st.rerun()
    else:
        st.info("No quotes stored yet.")


# ============================================================================
# TAB 3: REFERENCE DATA
# ============================================================================
with tab3:
    report = build_price_report(data)
    if report["status"] == "success":
        st.success("Price matrices are consistent")
    for error in report["errors"]:
        st.error(error)
    for warning in report["warnings"]:
        st.warning(warning)

    code = st.selectbox("Price table", roof_codes, key="price_table_code")
    prices = pd.DataFrame([vars(p) for p in data.price_table(code)])
    if not prices.empty:
        matrix = prices.pivot_table(index='width_max', columns='modules', values='price')
        st.dataframe(matrix, use_container_width=True)

    with st.expander("✏️ Edit prices"):
        price_rows = reference_service.list_prices(code)
        edited_prices = st.data_editor(
            pd.DataFrame(price_rows),
            use_container_width=True,
            column_config={
                "roof_type": None,
                "width_label": st.column_config.TextColumn("Band", disabled=True),
                "width_min": st.column_config.NumberColumn("From (mm)", disabled=True),
                "width_max": st.column_config.NumberColumn("To (mm)", disabled=True),
                "modules": st.column_config.NumberColumn("Modules", disabled=True),
                "price": st.column_config.NumberColumn("Price", min_value=0, step=1),
                "height": st.column_config.NumberColumn("Height (mm)", min_value=0, step=1),
            },
            hide_index=True,
            key=f"price_editor_{code}",
        )
        if st.button("💾 Save Prices"):
            changes = changed_rows(price_rows, edited_prices, ['price', 'height'])
            updates = [
                {**{k: price_rows[i][k] for k in ('width_min', 'width_max', 'modules')}, **fields}
                for i, fields in changes.items()
            ]
            if not updates:
                st.info("No price changes")
            elif save_reference_changes(lambda: reference_service.bulk_update_prices(code, updates)[1]):
                st.rerun()

    st.subheader("Roof Types")
    roof_rows = reference_service.list_roof_types()
    roof_fields = ['name', 'min_width', 'max_width', 'has_skirts', 'min_modules', 'max_modules', 'sort_order', 'active']
    edited_roofs = st.data_editor(
        pd.DataFrame(roof_rows),
        use_container_width=True,
        column_config={
            "code": st.column_config.TextColumn("Code", disabled=True),
            "price_count": st.column_config.NumberColumn("Prices", disabled=True),
        },
        hide_index=True,
        key="roof_type_editor",
    )
    if st.button("💾 Save Roof Types"):
        changes = changed_rows(roof_rows, edited_roofs, roof_fields)

        def save_roof_types():
            warnings = []
            for i, fields in changes.items():
                warnings = reference_service.update_roof_type(roof_rows[i]['code'], fields)[1]
            return warnings

        if not changes:
            st.info("No roof type changes")
        elif save_reference_changes(save_roof_types):
            st.rerun()

    st.subheader("Surcharges")
    surcharge_rows = reference_service.list_surcharges()
    surcharge_fields = ['name', 'category', 'type', 'value', 'value_rock', 'min_value', 'description', 'sort_order', 'active']
    edited_surcharges = st.data_editor(
        pd.DataFrame(surcharge_rows),
        use_container_width=True,
        column_config={
            "code": st.column_config.TextColumn("Code", disabled=True),
            "category": st.column_config.SelectboxColumn("Category", options=list(CATEGORIES)),
            "type": st.column_config.SelectboxColumn("Type", options=list(KINDS)),
            "value_rock": st.column_config.NumberColumn("ROCK"),
            "min_value": st.column_config.NumberColumn("Minimum"),
        },
        hide_index=True,
        key="surcharge_editor",
    )
    if st.button("💾 Save Surcharges"):
        changes = changed_rows(surcharge_rows, edited_surcharges, surcharge_fields)

        def save_surcharges():
            warnings = []
            for i, fields in changes.items():
                warnings += reference_service.update_surcharge(surcharge_rows[i]['code'], fields)[1]
            return warnings

        if not changes:
            st.info("No surcharge changes")
        elif save_reference_changes(save_surcharges):
            st.rerun()

    s1, s2 = st.columns(2)
    with s1:
        with st.form("new_surcharge", clear_on_submit=True):
            st.markdown("**New surcharge**")
            new_code = st.text_input("Code")
            new_name = st.text_input("Name")
            new_category = st.selectbox("Category", CATEGORIES)
            new_kind = st.selectbox("Type", KINDS)
            new_value = st.number_input("Value", value=0.0)
            if st.form_submit_button("➕ Add"):
                new_surcharge = {
                    'code': new_code.strip(),
                    'name': new_name.strip(),
                    'category': new_category,
                    'type': new_kind,
                    'value': new_value,
                }
                if save_reference_changes(lambda: reference_service.create_surcharge(new_surcharge)[1]):
                    st.rerun()
    with s2:
        delete_code = st.selectbox("Delete surcharge", [s['code'] for s in surcharge_rows], key="delete_surcharge_code")
        if st.button("🗑️ Delete Surcharge"):
            if save_reference_changes(lambda: reference_service.delete_surcharge(delete_code)):
                st.rerun()

    if st.button("🔄 Reload Reference Data"):
        engine.reload_data()
        st.toast("Reference data reloaded")
        st.rerun()
