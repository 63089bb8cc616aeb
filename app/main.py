"""
Streamlit Frontend for Trip Log

The screens a driver uses to log trips, review them by year, and export
them for a tax return.

DESIGN PRINCIPLES:
1. One form per task, nothing hidden
2. Every offending field is reported at once
3. A failed save says so and leaves the form filled in for a retry

The UI never touches storage directly; it calls the ledger, the vehicle
registry and the preferences store.
"""

import asyncio
from datetime import datetime, time

import streamlit as st

from triplog.audit import AuditLogger
from triplog.config import get_settings, validate_all_settings
from triplog.deductions import deduction_for, format_currency, format_miles
from triplog.models.trip import DistanceUnit, Theme, TripType
from triplog.orchestrator import AppComponents, TripLedger, create_app_components
from triplog.services.storage import DuplicateError, NotFoundError, StorageError
from triplog.validation import ValidationError, get_user_friendly_summary


# Page configuration
st.set_page_config(
    page_title="Trip Log",
    page_icon="🚗",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .trip-card {
        padding: 12px 16px;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 6px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return run_async(create_app_components())


def show_unexpected_error(action: str, error: Exception) -> None:
    AuditLogger().log_error(type(error).__name__, str(error), {"action": action})
    st.error(f"Something went wrong while trying to {action}: {error}")


def money(amount) -> str:
    return format_currency(amount, get_settings().app.currency_prefix)


def main():
    """Main application entry point."""
    components = get_components()
    ledger = components.ledger
    unit = ledger.preferences.distance_unit.value

    st.sidebar.title("🚗 Trip Log")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📝 New Trip", "📅 History", "📊 Summary", "🚙 Vehicles", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        f"""
        **Current rates ({unit}):**
        - Business: {money(ledger.rates.business)}
        - Medical: {money(ledger.rates.medical)}
        - Moving: {money(ledger.rates.moving)}
        - Charitable: {money(ledger.rates.charitable)}
        """
    )

    if page == "📝 New Trip":
        render_new_trip_page(components)
    elif page == "📅 History":
        render_history_page(ledger)
    elif page == "📊 Summary":
        render_summary_page(ledger)
    elif page == "🚙 Vehicles":
        render_vehicles_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def _combine(day, at: time) -> datetime:
    return datetime.combine(day, at)


def render_new_trip_page(components: AppComponents):
    """Render the trip entry form."""
    st.title("📝 New Trip")
    st.markdown("Record where you went, why, and the odometer readings.")

    vehicles = run_async(components.vehicles.load_all())
    now = datetime.now()

    with st.form("new_trip"):
        col1, col2 = st.columns(2)

        with col1:
            start = st.text_input("Starting location *")
            destination = st.text_input("Destination *")
            purpose = st.text_input("Purpose *", placeholder="e.g., Client meeting")
            if vehicles:
                vehicle = st.selectbox("Vehicle *", options=vehicles)
            else:
                vehicle = st.text_input(
                    "Vehicle *",
                    help="Add vehicles on the Vehicles page to pick from a list",
                )
            trip_type = st.selectbox(
                "Trip type",
                options=list(TripType),
                format_func=lambda x: x.value.title(),
            )

        with col2:
            start_odometer = st.text_input("Starting odometer *", placeholder="12034.5")
            end_odometer = st.text_input("Ending odometer *", placeholder="12081.0")
            use_now = st.checkbox("Use the current time for start and end", value=True)
            start_day = st.date_input("Start date", value=now.date())
            start_at = st.time_input("Start time", value=now.time().replace(microsecond=0))
            end_day = st.date_input("End date", value=now.date())
            end_at = st.time_input("End time", value=now.time().replace(microsecond=0))

        submitted = st.form_submit_button("✅ Save Trip", type="primary")

    if not submitted:
        return

    fields = {
        "start": start,
        "destination": destination,
        "purpose": purpose,
        "vehicle": vehicle or "",
        "trip_type": trip_type.value,
        "start_odometer": start_odometer,
        "end_odometer": end_odometer,
    }
    if not use_now:
        fields["start_date_time"] = _combine(start_day, start_at)
        fields["end_date_time"] = _combine(end_day, end_at)

    try:
        trip = run_async(components.ledger.create_trip(fields))
    except ValidationError as e:
        st.error(get_user_friendly_summary(e.issues))
        return
    except StorageError as e:
        st.error(f"Failed to save: {e}. Your entry was not recorded; please try again.")
        return

    deduction = deduction_for(trip, components.ledger.rates)
    st.success(
        f"Trip saved: {trip.start} → {trip.destination}, "
        f"{trip.miles} {components.ledger.preferences.distance_unit.value}, "
        f"deduction {money(deduction)}"
    )


def render_trip_editor(ledger: TripLedger, trip) -> None:
    """Inline edit form for one trip."""
    with st.form(f"edit_{trip.id}"):
        col1, col2 = st.columns(2)
        with col1:
            start = st.text_input("Starting location", value=trip.start)
            destination = st.text_input("Destination", value=trip.destination)
            purpose = st.text_input("Purpose", value=trip.purpose)
            vehicle = st.text_input("Vehicle", value=trip.vehicle)
        with col2:
            trip_type = st.selectbox(
                "Trip type",
                options=list(TripType),
                index=list(TripType).index(trip.category),
                format_func=lambda x: x.value.title(),
            )
            start_odometer = st.text_input("Starting odometer", value=trip.start_odometer)
            end_odometer = st.text_input("Ending odometer", value=trip.end_odometer)

        saved = st.form_submit_button("💾 Save Changes")

    if saved:
        candidates = {
            "start": start,
            "destination": destination,
            "purpose": purpose,
            "vehicle": vehicle,
            "trip_type": trip_type.value,
            "start_odometer": start_odometer,
            "end_odometer": end_odometer,
        }
        current = trip.model_dump()
        changes = {name: value for name, value in candidates.items() if value != current[name]}
        if not changes:
            st.info("Nothing changed.")
            return
        try:
            run_async(ledger.update_trip(trip.id, changes))
        except ValidationError as e:
            st.error(get_user_friendly_summary(e.issues))
            return
        except (NotFoundError, StorageError) as e:
            st.error(f"Failed to save: {e}")
            return
        st.rerun()

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("⏱️ Start = now", key=f"start_now_{trip.id}"):
            _set_to_now(ledger, trip.id, "startDateTime")
    with col2:
        if st.button("⏱️ End = now", key=f"end_now_{trip.id}"):
            _set_to_now(ledger, trip.id, "endDateTime")
    with col3:
        if st.button("🗑️ Delete", key=f"delete_{trip.id}"):
            try:
                run_async(ledger.delete_trip(trip.id))
            except StorageError as e:
                st.error(f"Failed to delete: {e}")
                return
            st.rerun()


def _set_to_now(ledger: TripLedger, trip_id: str, field: str) -> None:
    try:
        run_async(ledger.set_to_now(trip_id, field))
    except ValidationError as e:
        st.error(get_user_friendly_summary(e.issues))
        return
    except (NotFoundError, StorageError) as e:
        st.error(f"Failed to save: {e}")
        return
    st.rerun()


def render_export_button(ledger: TripLedger, year=None) -> None:
    label = f"📤 Export {year}" if year else "📤 Export all trips"
    if st.button(label, key=f"export_{year or 'all'}"):
        try:
            document = run_async(ledger.export_csv(year))
        except Exception as e:
            show_unexpected_error("export trips", e)
            return
        st.download_button(
            f"⬇️ Download {document.filename} ({document.row_count} trips)",
            data=document.content,
            file_name=document.filename,
            mime="text/csv",
            key=f"download_{year or 'all'}",
        )


def render_history_page(ledger: TripLedger):
    """Render trips grouped by year."""
    st.title("📅 Trip History")
    unit = ledger.preferences.distance_unit.value

    groups = run_async(ledger.history())
    if not groups:
        st.info("No trips yet. Use the 'New Trip' page to log your first trip.")
        return

    render_export_button(ledger)
    st.markdown("---")

    for group in groups:
        st.subheader(
            f"{group.year}: {len(group.trips)} trips, "
            f"{format_miles(group.total_miles)} {unit}, {money(group.total_deduction)}"
        )
        render_export_button(ledger, group.year)

        for trip in group.trips:
            title = (
                f"{trip.start} → {trip.destination} · {trip.miles or '?'} {unit} · "
                f"{trip.category.value.title()}"
            )
            with st.expander(title):
                st.markdown(f"""
                <div class="trip-card">
                    <p><strong>Purpose:</strong> {trip.purpose}</p>
                    <p><strong>Vehicle:</strong> {trip.vehicle}</p>
                    <p><strong>Started:</strong> {trip.start_date_time}</p>
                    <p><strong>Ended:</strong> {trip.end_date_time}</p>
                    <p><strong>Deduction:</strong> {money(deduction_for(trip, ledger.rates))}</p>
                </div>
                """, unsafe_allow_html=True)
                render_trip_editor(ledger, trip)


def render_summary_page(ledger: TripLedger):
    """Render totals for all trips or one year."""
    st.title("📊 Summary")
    unit = ledger.preferences.distance_unit.value

    groups = run_async(ledger.history())
    options = ["All years"] + [group.year for group in groups]
    choice = st.selectbox("Year", options=options)
    year = None if choice == "All years" else choice

    summary = run_async(ledger.summary(year))

    col1, col2, col3 = st.columns(3)
    col1.metric("Total trips", summary.total_trips)
    col2.metric(f"Total {unit}", format_miles(summary.total_miles))
    col3.metric("Deduction", money(summary.total_deduction))

    col1, col2 = st.columns(2)
    col1.metric("Most used vehicle", summary.most_used_vehicle)
    col2.metric("Top purpose", summary.top_purpose)

    if summary.deduction_by_category:
        st.markdown("### By trip type")
        for category, amount in summary.deduction_by_category.items():
            miles = summary.miles_by_category.get(category, 0)
            st.markdown(
                f"- **{category.value.title()}**: {format_miles(miles)} {unit}, {money(amount)}"
            )


def render_vehicles_page(components: AppComponents):
    """Render the vehicle registry."""
    st.title("🚙 Vehicles")
    registry = components.vehicles

    with st.form("add_vehicle", clear_on_submit=True):
        name = st.text_input("Vehicle name", placeholder="e.g., Honda Civic")
        added = st.form_submit_button("➕ Add Vehicle", type="primary")

    if added:
        try:
            run_async(registry.add(name))
            st.success(f"Added {name.strip()}")
        except ValidationError:
            st.error("Please enter a vehicle name")
        except DuplicateError:
            st.error(f"'{name.strip()}' is already registered")
        except StorageError as e:
            st.error(f"Failed to save: {e}")

    st.markdown("---")
    vehicles = run_async(registry.load_all())
    if not vehicles:
        st.info("No vehicles registered yet.")
        return

    for index, vehicle in enumerate(vehicles):
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{vehicle}**")
        if col2.button("Remove", key=f"remove_{index}"):
            in_use = run_async(components.ledger.trips_referencing_vehicle(vehicle))
            try:
                run_async(registry.remove(vehicle))
            except StorageError as e:
                st.error(f"Failed to remove: {e}")
                return
            if in_use:
                st.warning(
                    f"{len(in_use)} logged trips still name '{vehicle}'; they keep that name."
                )
            else:
                st.rerun()


def render_settings_page(components: AppComponents):
    """Render preferences and configuration status."""
    st.title("⚙️ Settings")
    ledger = components.ledger
    current = ledger.preferences

    with st.form("preferences"):
        theme = st.radio(
            "Theme",
            options=list(Theme),
            index=list(Theme).index(current.theme),
            format_func=lambda x: x.value.title(),
            horizontal=True,
        )
        unit = st.radio(
            "Distance unit",
            options=list(DistanceUnit),
            index=list(DistanceUnit).index(current.distance_unit),
            format_func=lambda x: x.value,
            horizontal=True,
        )
        rate = st.text_input(
            "Business mileage rate",
            value="" if current.mileage_rate is None else str(current.mileage_rate),
            help="Leave empty to use the standard rate",
        )
        saved = st.form_submit_button("💾 Save Settings", type="primary")

    if saved:
        try:
            updated = run_async(components.preferences_store.update(
                current,
                theme=theme,
                distance_unit=unit,
                mileage_rate=rate,
            ))
        except ValidationError as e:
            st.error(get_user_friendly_summary(e.issues))
        except StorageError as e:
            st.error(f"Failed to save: {e}")
        else:
            ledger.apply_preferences(updated)
            st.success("Settings saved")

    st.markdown("---")
    st.markdown("### Configuration")

    status = validate_all_settings()
    for name in ("storage", "rates", "app"):
        if status.get(name, False):
            st.success(f"✅ {name.title()} settings loaded")
        else:
            st.error(f"❌ {name.title()} settings: {status.get(f'{name}_error', 'invalid')}")

    st.markdown(f"Data file: `{get_settings().storage.path}`")


if __name__ == "__main__":
    main()
