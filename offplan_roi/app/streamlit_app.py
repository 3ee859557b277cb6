from __future__ import annotations

import asyncio
import datetime
import io
import json
import logging
import os
import sys
from typing import List

import pandas as pd
import streamlit as st
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer

# Ensure package import works on Streamlit Cloud when CWD != repo root
_THIS_DIR = os.path.dirname(__file__)
_REPO_ROOT = os.path.abspath(os.path.join(_THIS_DIR, "..", ".."))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from offplan_roi.core import plots
from offplan_roi.core.indices import KNOWN_FAMILIES, IndexRateProvider, describe_source, parse_source
from offplan_roi.core.percentages import to_percentage, validate_allocation
from offplan_roi.core.reinforcements import reinforcement_months, start_date_from_valuation, delivery_date_from_start
from offplan_roi.core.resale import RiskPolicy, roi_table
from offplan_roi.core.schedule import PurchaseConfig, aggregate_yearly
from offplan_roi.core.simulation import SimulationResult, run_simulation
from offplan_roi.core.strategies import MarketAssumptions, PropertyPlan, StrategyComparator, best_strategy
from offplan_roi.core.taxes import CommissionPolicy, TaxPolicy, financing_estimate, net_proceeds
from config import (
    PROPERTY_VALUE,
    DOWN_PAYMENT_VALUE,
    INSTALLMENTS_VALUE,
    INSTALLMENTS_COUNT,
    REINFORCEMENT_VALUE,
    REINFORCEMENT_FREQUENCY,
    FINAL_MONTHS_WITHOUT_REINFORCEMENT,
    RENTAL_RATE_PERCENT,
    CORRECTION_MODE,
    MANUAL_CORRECTION_RATE,
    APPRECIATION_MODE,
    MANUAL_APPRECIATION_RATE,
    CYCLE_OFFSET,
    INDEX_SOURCE_URL,
    INDEX_SOURCE_KEY,
    INDEX_SOURCE_TIMEOUT,
    RESALE_THRESHOLD_PERCENT,
    RAPID_HORIZON_FRACTION,
    RAPID_THRESHOLD_PERCENT,
    BALANCED_HORIZON_FRACTION,
    PROFIT_WEIGHT,
    ROI_WEIGHT,
    INCLUDE_COMMISSION,
    COMMISSION_RATE,
    INCLUDE_TAX,
    CAPITAL_GAINS_TAX_RATE,
)


st.set_page_config(page_title="Off-plan resale simulator", layout="wide")

MODES = ["manual", *KNOWN_FAMILIES]


@st.cache_resource
def index_provider() -> IndexRateProvider:
    provider = IndexRateProvider(
        base_url=INDEX_SOURCE_URL or None,
        api_key=INDEX_SOURCE_KEY or None,
        timeout=INDEX_SOURCE_TIMEOUT,
    )
    asyncio.run(provider.ensure_loaded())
    return provider


def risk_policy() -> RiskPolicy:
    return RiskPolicy(
        rapid_horizon_fraction=RAPID_HORIZON_FRACTION,
        rapid_threshold_percent=RAPID_THRESHOLD_PERCENT,
        balanced_horizon_fraction=BALANCED_HORIZON_FRACTION,
        profit_weight=PROFIT_WEIGHT,
        roi_weight=ROI_WEIGHT,
    )


def _mode_index(mode: str) -> int:
    key = mode if mode.lower() == "manual" else describe_source(parse_source(mode))
    return MODES.index(key) if key in MODES else 0


def sidebar_inputs() -> PurchaseConfig:
    st.sidebar.header("Purchase")
    property_value = st.sidebar.number_input("Property value", min_value=0, value=int(PROPERTY_VALUE), step=5_000)
    down_payment = st.sidebar.number_input("Down payment", min_value=0, value=int(DOWN_PAYMENT_VALUE), step=1_000)

    st.sidebar.subheader("Installments")
    installments_count = int(st.sidebar.number_input("Number of installments", min_value=1, value=INSTALLMENTS_COUNT, step=1))
    installments_value = st.sidebar.number_input("Installment value", min_value=0, value=int(INSTALLMENTS_VALUE), step=100)
    reinforcement_value = st.sidebar.number_input("Reinforcement value", min_value=0, value=int(REINFORCEMENT_VALUE), step=1_000)
    reinforcement_frequency = int(st.sidebar.number_input("Reinforcement every (months)", min_value=0, value=REINFORCEMENT_FREQUENCY, step=1))
    final_without = int(st.sidebar.number_input("Final months without reinforcement", min_value=0, value=FINAL_MONTHS_WITHOUT_REINFORCEMENT, step=1))

    st.sidebar.subheader("Indices")
    correction_mode = st.sidebar.selectbox("Correction", MODES, index=_mode_index(CORRECTION_MODE))
    correction_rate = st.sidebar.number_input("Manual correction (% per month)", value=MANUAL_CORRECTION_RATE, step=0.05, format="%0.2f")
    appreciation_mode = st.sidebar.selectbox("Appreciation", MODES, index=_mode_index(APPRECIATION_MODE))
    appreciation_rate = st.sidebar.number_input("Manual appreciation (% per month)", value=MANUAL_APPRECIATION_RATE, step=0.05, format="%0.2f")
    cycle_offset = int(st.sidebar.number_input("Starting month in index cycle (0-11)", min_value=0, max_value=11, value=CYCLE_OFFSET, step=1))

    st.sidebar.subheader("Dates")
    valuation_date = st.sidebar.date_input("Valuation date", value=datetime.date.today())
    start_date = st.sidebar.date_input("First installment", value=start_date_from_valuation(valuation_date))
    delivery_date = st.sidebar.date_input("Delivery date", value=delivery_date_from_start(start_date, installments_count))

    rental_rate = st.sidebar.number_input("Rent (% of value per month)", min_value=0.0, value=RENTAL_RATE_PERCENT, step=0.05, format="%0.2f")

    months = reinforcement_months(installments_count, reinforcement_frequency, final_without)
    keys_value = property_value - down_payment - installments_value * installments_count - reinforcement_value * len(months)

    return PurchaseConfig(
        property_value=float(property_value),
        down_payment_value=float(down_payment),
        installments_value=float(installments_value),
        installments_count=installments_count,
        reinforcement_value=float(reinforcement_value),
        reinforcement_frequency=reinforcement_frequency,
        final_months_without_reinforcement=final_without,
        keys_value=float(keys_value),
        correction=parse_source(correction_mode, correction_rate),
        appreciation=parse_source(appreciation_mode, appreciation_rate),
        cycle_offset=cycle_offset,
        rental_rate_percent=float(rental_rate),
        valuation_date=valuation_date,
        start_date=start_date,
        delivery_date=delivery_date,
    )


def style_with_commas(df: pd.DataFrame):
    num_cols = df.select_dtypes(include=["number"]).columns
    if len(num_cols) == 0:
        return df
    return df.style.format({col: "{:,.2f}" for col in num_cols})


def render_allocation(config: PurchaseConfig):
    check = validate_allocation(config)
    if check.is_valid:
        st.success(f"Allocation: {check.total_percentage:.2f}%")
    else:
        for error in check.errors:
            st.warning(error)
    st.caption(f"Keys share: {to_percentage(config.keys_value, config.property_value):.2f}%")


def render_summary(result: SimulationResult):
    st.subheader("Summary")
    resale = result.resale
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Invested", f"{resale.investment_value:,.0f}")
    c2.metric("Property value", f"{resale.property_value:,.0f}")
    c3.metric("Profit", f"{resale.profit:,.0f}", f"{resale.profit_percentage:.1f}%")
    c4.metric("Rent / month", f"{result.rental.monthly:,.0f}", f"{result.rental.annual_return_percent:.1f}% / year")
    st.caption(f"Keys amount: {result.schedule.keys_amount:,.0f} (financing ~{financing_estimate(result.schedule.keys_amount):,.0f} / month)")
    st.plotly_chart(plots.schedule_curves(result.schedule.to_frame()), use_container_width=True)


def render_schedule(result: SimulationResult):
    st.subheader("Payment schedule")
    frame = result.schedule.to_frame()
    yearly = st.toggle("Yearly view", value=False)
    table = aggregate_yearly(frame) if yearly else frame
    st.dataframe(style_with_commas(table), use_container_width=True)
    st.download_button(
        "Export CSV",
        data=table.to_csv(index=False).encode("utf-8"),
        file_name="schedule_yearly.csv" if yearly else "schedule.csv",
        mime="text/csv",
    )
    st.plotly_chart(plots.payment_bars(frame), use_container_width=True)


def render_resale(result: SimulationResult):
    st.subheader("Resale timing")
    best = result.best_resale
    c1, c2, c3 = st.columns(3)
    c1.metric("Max profit month", best["best_profit_month"], f"{best['max_profit']:,.0f}")
    c2.metric("Max ROI/month", best["best_roi_month"], f"{best['max_roi']:.1f}%")
    c3.metric("Earliest month", best["early_month"] or "-", f"{best['early_profit_percentage'] or 0:.1f}%")

    profiles = pd.DataFrame([p.to_dict() for p in result.risk_profiles])
    st.dataframe(style_with_commas(profiles), use_container_width=True)
    st.plotly_chart(plots.profit_curve(roi_table(result.schedule), result.risk_profiles), use_container_width=True)

    st.markdown("Sale costs")
    include_commission = st.checkbox("Brokerage commission", value=INCLUDE_COMMISSION)
    commission_rate = st.number_input("Commission (%)", min_value=0.0, value=COMMISSION_RATE * 100, step=0.5) / 100
    include_tax = st.checkbox("Capital gains tax", value=INCLUDE_TAX)
    tax_rate = st.number_input("Tax (% of profit)", min_value=0.0, value=CAPITAL_GAINS_TAX_RATE * 100, step=0.5) / 100
    resale = result.resale
    proceeds = net_proceeds(
        resale.property_value,
        resale.profit,
        CommissionPolicy(include_commission, commission_rate),
        TaxPolicy(include_tax, tax_rate),
    )
    st.plotly_chart(
        plots.sale_waterfall(
            {
                "sale_value": resale.property_value,
                "investment": resale.investment_value,
                "remaining_balance": resale.remaining_balance,
                "commission": proceeds.commission,
                "tax": proceeds.tax,
                "net_profit": proceeds.net_profit,
            }
        ),
        use_container_width=True,
    )


def render_strategies(config: PurchaseConfig):
    st.subheader("Exit strategies")
    c1, c2, c3 = st.columns(3)
    correction = c1.number_input("Correction (% per month)", value=0.5, step=0.05) / 100
    appreciation = c2.number_input("Appreciation (% per month)", value=1.35, step=0.05) / 100
    rent = c3.number_input("Rent (% per month)", value=0.6, step=0.05)
    plan = PropertyPlan(
        total_value=config.property_value,
        down_payment=config.down_payment_value,
        start_date=config.valuation_date,
        delivery_date=config.delivery_date,
    )
    comparator = StrategyComparator(plan, MarketAssumptions(correction, appreciation, rental_rate_percent=rent))
    strategies = comparator.compare()
    best = best_strategy(strategies)
    if best is not None:
        st.info(f"Best strategy: {best.name} ({best.annual_roi:.1f}% per year, {best.month} months)")
    st.dataframe(pd.DataFrame([s.__dict__ for s in strategies]), use_container_width=True)
    st.plotly_chart(plots.strategy_bars(strategies), use_container_width=True)
    st.plotly_chart(plots.roi_evolution_curves(comparator.roi_evolution()), use_container_width=True)


def render_report(result: SimulationResult, provider: IndexRateProvider):
    st.subheader("Export")
    record = result.to_record(name=st.text_input("Simulation name", value="Simulation"))
    st.download_button(
        "Download JSON",
        data=json.dumps(record.to_dict(), ensure_ascii=False, indent=2).encode("utf-8"),
        file_name=f"{record.id}.json",
        mime="application/json",
    )
    if st.button("Generate PDF"):
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4)
        styles = getSampleStyleSheet()
        story: List = []
        story.append(Paragraph("Off-plan resale simulation", styles["Title"]))
        story.append(Spacer(1, 12))
        story.append(Paragraph(f"Correction: {describe_source(result.config.correction)} ({provider.source})", styles["Normal"]))
        story.append(Paragraph(f"Appreciation: {describe_source(result.config.appreciation)}", styles["Normal"]))
        story.append(Paragraph(f"Total paid: {result.schedule.total_paid:,.2f}", styles["Normal"]))
        story.append(Paragraph(f"Keys amount: {result.schedule.keys_amount:,.2f}", styles["Normal"]))
        story.append(Paragraph(f"Profit at month {result.resale.month}: {result.resale.profit:,.2f} ({result.resale.profit_percentage:.2f}%)", styles["Normal"]))
        for profile in result.risk_profiles:
            story.append(Paragraph(f"{profile.label}: month {profile.month}, profit {profile.profit:,.2f}", styles["Normal"]))
        doc.build(story)
        buffer.seek(0)
        st.download_button("Download PDF", data=buffer, file_name="simulation.pdf", mime="application/pdf")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    st.title("Off-plan purchase & resale simulator")
    provider = index_provider()
    config = sidebar_inputs()
    render_allocation(config)

    resale_month = None
    if st.toggle("Custom resale month", value=False):
        resale_month = int(st.number_input("Resale month", min_value=1, max_value=config.installments_count + 1, value=config.installments_count + 1))

    result = run_simulation(config, provider, resale_month, RESALE_THRESHOLD_PERCENT, risk_policy())
    if result.schedule.is_empty:
        st.warning("Fill in all dates to generate the schedule")
        return

    tabs = st.tabs(["Summary", "Schedule", "Resale", "Strategies", "Export"])
    with tabs[0]:
        render_summary(result)
    with tabs[1]:
        render_schedule(result)
    with tabs[2]:
        render_resale(result)
    with tabs[3]:
        render_strategies(config)
    with tabs[4]:
        render_report(result, provider)


if __name__ == "__main__":
    main()
