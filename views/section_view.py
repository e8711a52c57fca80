import streamlit as st

SECTION_TITLES = {
    "dashboard": "Dashboard",
    "studios": "Studios",
    "services": "Services",
    "drivers": "Drivers",
    "orders": "Orders",
    "analytics": "Analytics",
    "revenue": "Revenue",
    "users": "Users",
    "settings": "Settings",
}


def render_section(page):
    title = SECTION_TITLES.get(page, page.title())
    st.title(title)
    st.info(f"{title} section is under development.")


def render_not_found():
    st.title("404")
    st.write("Oops! Page not found.")
    if st.button("Return to Home"):
        st.query_params["page"] = "dashboard"
        st.rerun()
