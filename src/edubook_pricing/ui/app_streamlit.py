"""
Streamlit UI for the EduBook price calculator.

Features:
- Setup form (class, course, category defaults) with Excel upload or mock data
- Editable textbook/notebook tables with apply-to-all, publisher discount and bulk edit
- Column filters that drive the totals and the download
- Data explorer over saved book lists and the frequent-price ledger
"""
import streamlit as st
import pandas as pd
from datetime import datetime

from edubook_pricing.config.logging_setup import configure_logging
from edubook_pricing.config.settings import get_settings
from edubook_pricing.engine.aggregate import distinct_values, format_currency
from edubook_pricing.engine.errors import EduBookError
from edubook_pricing.engine.models import BookFilters, UploadMeta, NOTEBOOK, TEXTBOOK
from edubook_pricing.services.calculator_service import CalculatorService
from edubook_pricing.services.explorer_service import ExplorerService
from edubook_pricing.services.store import build_store


st.set_page_config(
    page_title="EduBook Price Calculator",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_store():
    """Get cached store instance."""
    settings = get_settings()
    configure_logging(settings.log_level)
    return build_store(settings)


settings = get_settings()
store = get_store()


def show_notices(calculator: CalculatorService):
    for notice in calculator.take_notices():
        text = f"**{notice.title}** {notice.message}"
        if notice.level == "error":
            st.error(text)
        elif notice.level == "warning":
            st.warning(text)
        else:
            st.toast(text)


# ============================================================================
# SIDEBAR: User
# ============================================================================
with st.sidebar:
    st.header("👤 User")
    user_id = st.text_input("User ID", value="", placeholder="Leave empty to work offline").strip()
    
    if user_id:
        st.success(f"Signed in as **{user_id}**")
    else:
        st.warning("Not signed in: frequent prices and saving are disabled")

# One calculator per user for the browser session
if st.session_state.get('calculator_user') != user_id:
    st.session_state.calculator = CalculatorService(store=store, user_id=user_id or None, settings=settings)
    st.session_state.calculator_user = user_id

calculator: CalculatorService = st.session_state.calculator


# ============================================================================
# MAIN CONTENT: TABBED INTERFACE
# ============================================================================
st.title("EduBook Price Calculator")
st.caption(f"v1.0 | {datetime.now().strftime('%Y-%m-%d')}")

tab1, tab2, tab3 = st.tabs(["🧮 Calculator", "🔎 Data Explorer", "📒 Frequent Prices"])


def book_table(book_type: str, title: str, records, generation: int):
    """Editable table for one working list, plus its bulk actions."""
    st.subheader(title)
    
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        all_discount = st.number_input("Discount %", value=0.0, key=f"{book_type}_all_discount")
        if st.button("Apply to All", key=f"{book_type}_apply_discount"):
            calculator.apply_to_all(book_type, 'discount', all_discount, generation)
            st.rerun()
    with c2:
        all_tax = st.number_input("Tax %", value=0.0, key=f"{book_type}_all_tax")
        if st.button("Apply to All", key=f"{book_type}_apply_tax"):
            calculator.apply_to_all(book_type, 'tax', all_tax, generation)
            st.rerun()
    with c3:
        publishers = distinct_values(r.publisher for r in calculator.session.records_for(book_type))
        publisher = st.selectbox("Publisher", publishers, index=None, key=f"{book_type}_publisher")
        pub_discount = st.number_input("Publisher Discount %", value=0.0, key=f"{book_type}_pub_discount")
        if st.button("Apply Publisher Discount", key=f"{book_type}_apply_pub"):
            try:
                calculator.apply_publisher_discount(book_type, publisher, pub_discount, generation)
                st.rerun()
            except EduBookError as e:
                st.warning(str(e))
    with c4:
        with st.popover("✏️ Bulk Edit"):
            names = st.multiselect(
                "Books",
                distinct_values(r.book_name for r in calculator.session.records_for(book_type)),
                key=f"{book_type}_bulk_names",
            )
            price = st.text_input("Price", key=f"{book_type}_bulk_price")
            discount = st.text_input("Discount %", key=f"{book_type}_bulk_discount")
            tax = st.text_input("Tax %", key=f"{book_type}_bulk_tax")
            if st.button("Update Selected", key=f"{book_type}_bulk_apply"):
                try:
                    calculator.bulk_edit(book_type, names, price or None, discount or None, tax or None, generation)
                    st.rerun()
                except EduBookError as e:
                    st.warning(str(e))
    
    columns = ['id', 'book_name', 'subject', 'publisher', 'price', 'discount', 'tax', 'final_price']
    if book_type == NOTEBOOK:
        columns.insert(4, 'pages')
    df = pd.DataFrame([{c: getattr(r, c) for c in columns} for r in records], columns=columns)
    
    edited_df = st.data_editor(
        df,
        use_container_width=True,
        hide_index=True,
        disabled=['id', 'final_price'],
        column_config={
            "book_name": st.column_config.TextColumn("Book Name"),
            "subject": st.column_config.TextColumn("Subject"),
            "publisher": st.column_config.TextColumn("Publisher"),
            "pages": st.column_config.NumberColumn("Pages", step=1),
            "price": st.column_config.NumberColumn("Price", format="%.2f"),
            "discount": st.column_config.NumberColumn("Discount (%)"),
            "tax": st.column_config.NumberColumn("Tax (%)"),
            "final_price": st.column_config.NumberColumn("Final Price", format="%.2f"),
        },
        key=f"{book_type}_editor_{generation}",
    )
    
    # Push each changed cell through the mutation engine
    changed = False
    for (_, before), (_, after) in zip(df.iterrows(), edited_df.iterrows()):
        for column in columns:
            if column in ('id', 'final_price'):
                continue
            old, new = before[column], after[column]
            if pd.isna(old) and pd.isna(new):
                continue
            if old != new:
                calculator.update_field(book_type, before['id'], column, None if pd.isna(new) else new, generation)
                changed = True
    if changed:
        st.rerun()


# ============================================================================
# TAB 1: CALCULATOR
# ============================================================================
with tab1:
    if calculator.session is None:
        st.subheader("Setup Calculation")
        st.caption("Enter metadata and default values before processing the book list.")
        
        with st.container(border=True):
            c1, c2 = st.columns(2)
            class_name = c1.selectbox("Class", [str(c) for c in range(1, 13)], index=11)
            course = c2.text_input("Course Combination", value=settings.default_course)
            
            c1, c2 = st.columns(2)
            with c1:
                st.markdown("##### Textbooks")
                tb_discount = st.number_input("Default Discount (%)", value=settings.textbook_discount, key="tb_discount")
                tb_tax = st.number_input("Default Tax (%)", value=settings.textbook_tax, key="tb_tax")
            with c2:
                st.markdown("##### Notebooks")
                nb_discount = st.number_input("Default Discount (%)", value=settings.notebook_discount, key="nb_discount")
                nb_tax = st.number_input("Default Tax (%)", value=settings.notebook_tax, key="nb_tax")
            
            meta = UploadMeta(class_name, course, tb_discount, tb_tax, nb_discount, nb_tax)
            
            uploaded = st.file_uploader("Upload Book List (Excel)", type=["xlsx"])
            st.caption(
                "Your Excel file should have two sheets: \"Textbooks\" and \"Notebooks\". Each sheet should "
                "contain columns: 'bookName', 'subject', 'publisher', 'price' (and 'pages' for notebooks)."
            )
            if uploaded is not None and st.button("📤 Process File", type="primary"):
                try:
                    calculator.start_from_workbook(uploaded.getvalue(), meta)
                    st.rerun()
                except EduBookError as e:
                    st.error(f"Error: {e}")
            
            if st.button("Use Mock Data Instead", use_container_width=True):
                calculator.start_from_mock(meta)
                st.rerun()
    else:
        session = calculator.session
        show_notices(calculator)
        st.markdown(f"### 🎓 Class {session.meta.class_name} | 📖 {session.meta.course}")
        
        with st.expander("🔍 Filters"):
            f1, f2, f3 = st.columns(3)
            filters = BookFilters(
                book_name=f1.text_input("Book Name", key="filter_name"),
                subject=f2.text_input("Subject", key="filter_subject"),
                publisher=f3.text_input("Publisher", key="filter_publisher"),
            )
        
        view = calculator.view(filters)
        book_table(TEXTBOOK, "Textbooks", view.textbooks, session.generation)
        st.divider()
        book_table(NOTEBOOK, "Notebooks", view.notebooks, session.generation)
        st.divider()
        
        st.subheader("Calculation Summary")
        m1, m2, m3 = st.columns(3)
        m1.metric("Textbooks Total", format_currency(view.totals.textbook_total, settings.currency))
        m2.metric("Notebooks Total", format_currency(view.totals.notebook_total, settings.currency))
        m3.metric("Grand Total", format_currency(view.totals.grand_total, settings.currency))
        
        b1, b2, b3 = st.columns(3)
        with b1:
            if st.button("↩️ Reset", use_container_width=True):
                calculator.reset()
                st.rerun()
        with b2:
            filename, data = calculator.export(filters)
            st.download_button(
                "📥 Download",
                data=data,
                file_name=filename,
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                use_container_width=True,
            )
        with b3:
            if st.button("💾 Save", use_container_width=True, disabled=not calculator.signed_in):
                try:
                    for notice in calculator.save():
                        (st.error if notice.level == "error" else st.success)(f"{notice.title}: {notice.message}")
                except EduBookError as e:
                    st.error(str(e))


# ============================================================================
# TAB 2: DATA EXPLORER
# ============================================================================
with tab2:
    st.subheader("Data Explorer")
    if not calculator.signed_in:
        st.info("Sign in to view your saved book lists.")
    else:
        explorer = ExplorerService(store, user_id)
        c1, c2, c3 = st.columns(3)
        class_filter = c1.selectbox("Class", ["all"] + explorer.classes(),
                                    format_func=lambda c: "All Classes" if c == "all" else f"Class {c}")
        publisher_filter = c2.text_input("Filter by Publisher...", key="explorer_publisher")
        group_by = c3.selectbox("Group totals by", ["class", "publisher", "course", "type"])
        
        books = explorer.snapshots(class_filter, publisher_filter)
        summary = explorer.summary(books)
        
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Books", summary.count)
        m2.metric("Total Value", format_currency(summary.total_value, settings.currency))
        m3.metric("Avg Discount", f"{summary.avg_discount:.1f}%")
        m4.metric("Avg Tax", f"{summary.avg_tax:.1f}%")
        
        if books:
            groups = explorer.groups(books, group_by)
            chart_df = pd.DataFrame([{'Group': str(g.key), 'Total': g.total_final_price} for g in groups])
            st.bar_chart(chart_df, x='Group', y='Total')
            st.dataframe(explorer.to_frame(books), use_container_width=True, hide_index=True)
        else:
            st.info("No data found. Start by using the Price Calculator.")


# ============================================================================
# TAB 3: FREQUENT PRICES
# ============================================================================
with tab3:
    st.subheader("📒 Frequently Used Book Prices")
    if not calculator.signed_in:
        st.info("Sign in to view your frequent book data.")
    else:
        explorer = ExplorerService(store, user_id)
        publisher_filter = st.text_input("Filter by Publisher...", key="ledger_publisher")
        entries = explorer.ledger_entries(publisher_filter)
        
        if entries:
            st.dataframe(pd.DataFrame([
                {
                    'Book Name': e.book_name,
                    'Type': e.type,
                    'Publisher': e.publisher,
                    'Pages': e.pages if e.pages is not None else 'N/A',
                    'Price': e.price,
                    'Discount (%)': e.discount,
                    'Tax (%)': e.tax,
                }
                for _, e in entries
            ]), use_container_width=True, hide_index=True)
        else:
            st.info("No frequent book data yet.")
        
        if st.button("🗑️ Delete All Frequent Data", type="secondary"):
            removed = calculator.wipe_ledger()
            st.toast(f"Deleted {removed} entries")
            st.rerun()
