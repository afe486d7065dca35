# frontend/app.py
# Asset management console: pricing/checkout and the report builder
#
# Run from repo root: streamlit run frontend/app.py

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict

import pandas as pd
import streamlit as st

# `streamlit run frontend/app.py` puts frontend/ on sys.path, not the repo root
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend.auth import clear_auth, get_client, get_current_user, init_auth_state, is_authenticated, login, require_auth
from frontend.config import ENV, IS_LOCAL, get_api_base_url
from frontend.errors import ApiError, ValidationError
from frontend.export import excel_available, export_filename, to_csv, to_excel, to_json
from frontend.models import BillingCycle, ChartType, FilterType, PlanTier, ReportFilter, ReportResult, SubscriptionQuote
from frontend.payments import PaymentService
from frontend.pricing import clamp_to_plan_limits, get_plan_details, price_breakdown
from frontend.report_runner import ReportRunner
from frontend.reports import REPORTS, list_report_types
from frontend.services import CatalogService, ReportService, load_dynamic_filters
from frontend.ui import field_error, remember_field_errors, render_event_timeline, render_price, show_api_error

st.set_page_config(page_title="Asset Manager", page_icon="📦", layout="wide")
ss = st.session_state

PAGES = ["Reports", "Pricing", "Login"]


def go_to(page: str) -> None:
    """Navigate to `page` and rerun."""
    ss["nav_page"] = page
    st.rerun()


# --------------------------------------------------------------------
# Sidebar
# --------------------------------------------------------------------

def render_sidebar() -> None:
    with st.sidebar:
        st.write("📦 Asset Manager")

        status = ss.get("_backend_status")
        if status in ("timeout", "connection_error"):
            st.error("⚠️ Backend unreachable")
        elif status == "ok":
            st.success("✅ Connected")

        try:
            api_base = get_api_base_url()
            st.caption(f"**API:** {api_base}" if IS_LOCAL else f"**Env:** {ENV}")
        except (ValueError, RuntimeError) as e:
            st.error(f"⚠️ API config error: {str(e)[:60]}")

        st.markdown("---")
        if is_authenticated():
            user = get_current_user() or {}
            st.info(f"Logged in as: **{user.get('email', 'unknown')}**")
            if st.button("🚪 Logout", key="logout_btn", use_container_width=True):
                clear_auth()
                go_to("Login")
        else:
            st.caption("Not logged in")

        current = ss.get("nav_page") or ("Reports" if is_authenticated() else "Login")
        choice = st.radio("Navigate", PAGES, index=PAGES.index(current) if current in PAGES else 0)
        if choice != current:
            ss["nav_page"] = choice

        render_event_timeline()


# --------------------------------------------------------------------
# Login
# --------------------------------------------------------------------

def render_login() -> None:
    st.header("Login")
    if ss.get("_session_expired"):
        st.warning("⚠️ Your session has expired. Please log in again.")

    with st.form("login_form"):
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        submitted = st.form_submit_button("Login")

    if not submitted:
        return
    if not email or not password:
        st.error("Please enter email and password.")
        return
    try:
        login(email, password)
    except ApiError as e:
        show_api_error(e)
        return
    go_to("Reports")


# --------------------------------------------------------------------
# Pricing + checkout
# --------------------------------------------------------------------

def render_pricing() -> None:
    st.header("Pricing")

    plan = st.selectbox("Plan", [p.value for p in PlanTier], format_func=lambda p: get_plan_details(p)["display_name"])
    cycle = st.radio("Billing cycle", [c.value for c in BillingCycle], horizontal=True)
    col1, col2 = st.columns(2)
    asset_count = col1.number_input("Assets", min_value=1, value=10, step=1)
    user_count = col2.number_input("Users", min_value=1, value=1, step=1)

    quote = SubscriptionQuote(plan=plan, asset_count=int(asset_count), user_count=int(user_count), billing_cycle=cycle)
    clamped = clamp_to_plan_limits(quote)
    if clamped != quote:
        st.info(f"{get_plan_details(plan)['display_name']} allows up to "
                f"{clamped.asset_count} assets and {clamped.user_count} users; quote adjusted.")
        quote = clamped

    breakdown = price_breakdown(quote)
    render_price(breakdown.total, "Total per year" if quote.billing_cycle == BillingCycle.annual else "Total per month")
    for item in breakdown.line_items:
        st.caption(item)
    with st.expander("Plan features"):
        for feature in get_plan_details(plan)["features"]:
            st.write(f"✓ {feature}")

    if not is_authenticated():
        st.caption("Log in to subscribe.")
        return

    user = get_current_user() or {}
    if st.button("Subscribe", type="primary"):
        try:
            result = PaymentService(get_client()).checkout(quote, user.get("email", ""), user_id=str(user.get("id", "")) or None)
        except ApiError as e:
            show_api_error(e)
            return
        ss["_pending_payment_reference"] = result.reference
        st.link_button("Continue to payment", result.authorization_url)

    reference = st.query_params.get("reference") or st.query_params.get("trxref") or ss.get("_pending_payment_reference")
    if reference and st.button("Check payment status"):
        try:
            verification = PaymentService(get_client()).verify_payment(reference)
        except ApiError as e:
            show_api_error(e)
            return
        if verification.is_successful:
            st.success("✅ Payment confirmed. Your subscription is active.")
            ss.pop("_pending_payment_reference", None)
        else:
            st.warning(f"Payment status: {verification.status}")


# --------------------------------------------------------------------
# Report builder
# --------------------------------------------------------------------

def get_runner() -> ReportRunner:
    runner = ss.get("report_runner")
    if runner is None:
        client = get_client()
        dynamic = load_dynamic_filters(CatalogService(client))
        ss["report_filter_warnings"] = dynamic.warnings
        runner = ReportRunner(ReportService(client).fetch_assets, dynamic.filters, state=ss)
        ss["report_runner"] = runner
    return runner


def render_filter_input(declared_filter: ReportFilter) -> Any:
    key = f"filter_{declared_filter.id}"
    label = declared_filter.label + (" *" if declared_filter.required else "")
    values = [o.value for o in declared_filter.options]
    labels = {o.value: o.label for o in declared_filter.options}
    if declared_filter.type == FilterType.date:
        value = st.date_input(label, value=None, key=key)
    elif declared_filter.type == FilterType.multiselect:
        value = st.multiselect(label, values, format_func=labels.get, key=key)
    elif declared_filter.type == FilterType.select:
        value = st.selectbox(label, [""] + values, format_func=lambda v: labels.get(v, "Any"), key=key)
    else:
        value = st.text_input(label, key=key)
    field_error(declared_filter.id)
    return value


def render_report_result(result: ReportResult) -> None:
    summary = result.summary
    cols = st.columns(3)
    cols[0].metric("Records", summary.total_records)
    cols[1].metric("Total Value", f"₦{summary.total_value:,.2f}")
    cols[2].metric("Categories", len(summary.categories))

    data = result.data
    chart_type = REPORTS[result.report_type].info.chart_type
    if data.chart_data:
        chart_df = pd.DataFrame([p.model_dump() for p in data.chart_data]).set_index("name")
        if chart_type == ChartType.line:
            st.line_chart(chart_df)
        else:
            st.bar_chart(chart_df)
    if data.table_data:
        st.dataframe(pd.DataFrame(data.table_data, columns=data.headers), use_container_width=True)
    elif not data.chart_data:
        st.info("No records match these filters.")

    cols = st.columns(3)
    cols[0].download_button("⬇️ CSV", to_csv(result), file_name=export_filename(result, "csv"), mime="text/csv")
    cols[1].download_button("⬇️ JSON", to_json(result), file_name=export_filename(result, "json"), mime="application/json")
    if excel_available():
        cols[2].download_button(
            "⬇️ Excel",
            to_excel(result),
            file_name=export_filename(result, "xlsx"),
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render_save_report(report_type: str, filters: Dict[str, Any]) -> None:
    with st.form("save_report_form"):
        name = st.text_input("Report name")
        description = st.text_input("Description")
        if not st.form_submit_button("💾 Save report"):
            return
    if not name:
        st.error("Please enter a report name.")
        return
    try:
        ReportService(get_client()).save_report(name, report_type, filters, description or None)
    except ApiError as e:
        show_api_error(e)
        return
    st.success("Report saved")


def render_reports() -> None:
    if not require_auth():
        return
    st.header("Report Builder")

    runner = get_runner()
    for warning in ss.get("report_filter_warnings", []):
        st.warning(warning)

    types = list_report_types()
    report_type = st.selectbox(
        "Report type",
        [t.id.value for t in types],
        format_func=lambda v: next(t.name for t in types if t.id.value == v),
    )
    st.caption(next(t.description for t in types if t.id.value == report_type))

    filters: Dict[str, Any] = {}
    cols = st.columns(2)
    for i, declared_filter in enumerate(runner.declared_filters):
        with cols[i % 2]:
            value = render_filter_input(declared_filter)
        if isinstance(value, date):
            value = value.isoformat()
        if value not in (None, "", []):
            filters[declared_filter.id] = value

    clicked = st.button("📊 Generate report", type="primary")
    retry = False
    error = runner.last_error
    if error is not None and not clicked:
        retry = show_api_error(error, retry_key="retry_report_btn")

    if clicked or retry:
        remember_field_errors(None)
        try:
            with st.spinner("Generating report..."):
                runner.generate(report_type, filters)
        except ValidationError as e:
            remember_field_errors(e)
            st.rerun()
        except ApiError:
            # runner.last_error carries the retry budget; rerender the banner
            st.rerun()

    if runner.latest is not None:
        render_report_result(runner.latest)
        render_save_report(runner.latest.report_type.value, dict(runner.latest.filters))


# --------------------------------------------------------------------
# Entry point
# --------------------------------------------------------------------

def main() -> None:
    # Must run before any widget so the session survives reruns
    init_auth_state()
    render_sidebar()

    page = ss.get("nav_page") or ("Reports" if is_authenticated() else "Login")
    if page == "Login":
        render_login()
    elif page == "Pricing":
        render_pricing()
    else:
        render_reports()


main()
