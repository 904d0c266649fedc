"""Risk Categorization and Recommendation Service.

Maps a 10-year risk percentage to a category and builds a prioritized
list of recommendations: a fixed base set per category followed by
recommendations triggered by the patient's individual risk factors.
"""

import logging
import math

from cardiac_risk.schemas.base import (
    MeasurementUnit,
    Priority,
    RecommendationCategory,
    RiskCategory,
    SmokingStatus,
)
from cardiac_risk.schemas.patient import PatientInput
from cardiac_risk.schemas.risk import ExternalResource, Recommendation
from cardiac_risk.services.unit_converter import CHOLESTEROL_MMOL_L_TO_MG_DL

logger = logging.getLogger(__name__)

# Lower bounds are inclusive: 10.0 is moderate, 20.0 is high
LOW_RISK_THRESHOLD = 10.0
MODERATE_RISK_THRESHOLD = 20.0

HIGH_SYSTOLIC_BP = 140
HIGH_DIASTOLIC_BP = 90
HIGH_TOTAL_CHOLESTEROL_MG_DL = 240
LOW_HDL_MG_DL = 40
SENIOR_AGE = 65

PRIORITY_ORDER: dict[Priority, int] = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}

CATEGORY_ORDER: dict[RecommendationCategory, int] = {
    RecommendationCategory.MEDICAL: 3,
    RecommendationCategory.LIFESTYLE: 2,
    RecommendationCategory.MONITORING: 1,
}

RISK_CATEGORY_DESCRIPTIONS: dict[RiskCategory, str] = {
    RiskCategory.LOW: "Low Risk (<10%)",
    RiskCategory.MODERATE: "Moderate Risk (10-20%)",
    RiskCategory.HIGH: "High Risk (≥20%)",
}


def categorize_risk(risk_percentage: float) -> RiskCategory:
    """Categorize a 10-year cardiovascular risk percentage.

    Args:
        risk_percentage: 10-year risk (0-100).

    Returns:
        LOW below 10%, MODERATE from 10% up to 20%, HIGH from 20%.
    """
    if risk_percentage < LOW_RISK_THRESHOLD:
        return RiskCategory.LOW
    if risk_percentage < MODERATE_RISK_THRESHOLD:
        return RiskCategory.MODERATE
    return RiskCategory.HIGH


# ============================================================================
# Base recommendations
# ============================================================================

def _low_risk_recommendations(risk_percentage: float) -> list[Recommendation]:
    return [
        Recommendation(
            category=RecommendationCategory.LIFESTYLE,
            priority=Priority.MEDIUM,
            title="Maintain Healthy Lifestyle",
            description=(
                f"Your 10-year cardiovascular risk is {risk_percentage:.1f}%, which is considered low. "
                "Continue your current healthy practices to maintain this low risk."
            ),
            action_items=[
                "Continue regular physical activity (at least 150 minutes moderate exercise per week)",
                "Maintain a heart-healthy diet rich in fruits, vegetables, and whole grains",
                "Keep your weight within a healthy range",
                "Avoid tobacco use and limit alcohol consumption",
                "Manage stress through relaxation techniques or hobbies",
            ],
            resources=[
                ExternalResource(
                    title="American Heart Association - Healthy Living",
                    url="https://www.heart.org/en/healthy-living",
                    description="Comprehensive guide to heart-healthy lifestyle choices",
                )
            ],
        ),
        Recommendation(
            category=RecommendationCategory.MONITORING,
            priority=Priority.LOW,
            title="Regular Health Check-ups",
            description=(
                "Schedule regular check-ups to monitor your cardiovascular health and catch any changes early."
            ),
            action_items=[
                "Annual physical examination with your healthcare provider",
                "Monitor blood pressure, cholesterol, and blood sugar levels",
                "Discuss family history changes with your doctor",
                "Stay up-to-date with preventive screenings",
            ],
        ),
    ]


def _moderate_risk_recommendations(risk_percentage: float) -> list[Recommendation]:
    return [
        Recommendation(
            category=RecommendationCategory.MEDICAL,
            priority=Priority.HIGH,
            title="Medical Consultation Recommended",
            description=(
                f"Your 10-year cardiovascular risk is {risk_percentage:.1f}%, which is in the moderate range. "
                "Consult with your healthcare provider to discuss prevention strategies."
            ),
            action_items=[
                "Schedule an appointment with your primary care physician",
                "Discuss your risk factors and potential interventions",
                "Consider medication if lifestyle changes are insufficient",
                "Develop a personalized prevention plan",
            ],
            resources=[
                ExternalResource(
                    title="ACC/AHA Cardiovascular Risk Calculator",
                    url="https://tools.acc.org/ascvd-risk-estimator-plus/",
                    description="Professional cardiovascular risk assessment tool",
                )
            ],
        ),
        Recommendation(
            category=RecommendationCategory.LIFESTYLE,
            priority=Priority.HIGH,
            title="Intensive Lifestyle Modifications",
            description="Implement comprehensive lifestyle changes to reduce your cardiovascular risk.",
            action_items=[
                "Adopt a Mediterranean or DASH diet pattern",
                "Increase physical activity to 300 minutes moderate exercise per week",
                "Achieve and maintain a healthy weight (BMI 18.5-24.9)",
                "Quit smoking if applicable and avoid secondhand smoke",
                "Limit alcohol to moderate consumption (1 drink/day for women, 2 for men)",
            ],
        ),
        Recommendation(
            category=RecommendationCategory.MONITORING,
            priority=Priority.MEDIUM,
            title="Enhanced Monitoring",
            description="Increase the frequency of health monitoring to track progress.",
            action_items=[
                "Check blood pressure monthly at home or pharmacy",
                "Monitor cholesterol levels every 6 months",
                "Track weight and physical activity regularly",
                "Schedule follow-up appointments every 3-6 months",
            ],
        ),
    ]


def _high_risk_recommendations(risk_percentage: float) -> list[Recommendation]:
    return [
        Recommendation(
            category=RecommendationCategory.MEDICAL,
            priority=Priority.HIGH,
            title="Immediate Medical Consultation Required",
            description=(
                f"Your 10-year cardiovascular risk is {risk_percentage:.1f}%, which is considered high. "
                "Immediate medical attention is strongly recommended."
            ),
            action_items=[
                "Schedule an urgent appointment with a cardiologist or primary care physician",
                "Discuss immediate medication options (statins, blood pressure medications)",
                "Consider aspirin therapy if appropriate and not contraindicated",
                "Develop an aggressive risk reduction plan",
                "Discuss emergency warning signs and when to seek immediate care",
            ],
            resources=[
                ExternalResource(
                    title="American College of Cardiology Guidelines",
                    url="https://www.acc.org/guidelines",
                    description="Professional guidelines for cardiovascular disease prevention",
                )
            ],
        ),
        Recommendation(
            category=RecommendationCategory.LIFESTYLE,
            priority=Priority.HIGH,
            title="Aggressive Risk Factor Modification",
            description="Implement immediate and comprehensive lifestyle changes under medical supervision.",
            action_items=[
                "Work with a registered dietitian for meal planning",
                "Start a medically supervised exercise program",
                "Achieve rapid weight loss if overweight (under medical guidance)",
                "Immediately quit smoking with professional support if applicable",
                "Eliminate alcohol consumption or reduce to minimal levels",
            ],
        ),
        Recommendation(
            category=RecommendationCategory.MONITORING,
            priority=Priority.HIGH,
            title="Intensive Medical Supervision",
            description="Require close medical monitoring and frequent follow-ups.",
            action_items=[
                "Monthly medical appointments initially",
                "Weekly blood pressure monitoring",
                "Quarterly cholesterol and diabetes screening",
                "Consider cardiac stress testing or imaging",
                "Monitor for medication side effects and effectiveness",
            ],
        ),
    ]


BASE_RECOMMENDATIONS = {
    RiskCategory.LOW: _low_risk_recommendations,
    RiskCategory.MODERATE: _moderate_risk_recommendations,
    RiskCategory.HIGH: _high_risk_recommendations,
}


def get_base_recommendations(category: RiskCategory, risk_percentage: float) -> list[Recommendation]:
    """Fixed recommendations for a risk category."""
    return BASE_RECOMMENDATIONS[RiskCategory(category)](risk_percentage)


# ============================================================================
# Personalized recommendations
# ============================================================================

def _cholesterol_mg_dl(value: float, unit: MeasurementUnit) -> float:
    return value * CHOLESTEROL_MMOL_L_TO_MG_DL if unit == MeasurementUnit.MMOL_L else value


def get_personalized_recommendations(
    patient: PatientInput,
    category: RiskCategory,
) -> list[Recommendation]:
    """Recommendations triggered by individual risk factors.

    Each condition contributes at most one recommendation.
    """
    recommendations: list[Recommendation] = []
    elevated = Priority.HIGH if category == RiskCategory.HIGH else Priority.MEDIUM

    if patient.smoking_status == SmokingStatus.CURRENT:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.LIFESTYLE,
                priority=Priority.HIGH,
                title="Smoking Cessation - Critical Priority",
                description=(
                    "Smoking significantly increases your cardiovascular risk. "
                    "Quitting smoking is the single most important step you can take."
                ),
                action_items=[
                    "Contact a smoking cessation program or quitline (1-800-QUIT-NOW)",
                    "Consider nicotine replacement therapy or prescription medications",
                    "Identify and avoid smoking triggers",
                    "Seek support from family, friends, or support groups",
                    "Set a quit date within the next 2 weeks",
                ],
                resources=[
                    ExternalResource(
                        title="CDC Smoking Cessation Resources",
                        url="https://www.cdc.gov/tobacco/quit_smoking/",
                        description="Comprehensive smoking cessation tools and support",
                    )
                ],
            )
        )
    elif patient.smoking_status == SmokingStatus.FORMER:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.LIFESTYLE,
                priority=Priority.MEDIUM,
                title="Maintain Smoke-Free Status",
                description="Congratulations on quitting smoking! Continue to avoid tobacco and secondhand smoke.",
                action_items=[
                    "Avoid environments with secondhand smoke",
                    "Continue using healthy coping strategies",
                    "Be aware that cardiovascular benefits continue to improve over time",
                    "Consider yourself a role model for others trying to quit",
                ],
            )
        )

    if patient.has_diabetes:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.MEDICAL,
                priority=Priority.HIGH,
                title="Diabetes Management - Essential for Heart Health",
                description=(
                    "Diabetes significantly increases cardiovascular risk. Optimal diabetes control is crucial."
                ),
                action_items=[
                    "Maintain HbA1c levels below 7% (or as recommended by your doctor)",
                    "Monitor blood glucose levels as directed",
                    "Take diabetes medications as prescribed",
                    "Work with an endocrinologist or diabetes educator",
                    "Follow a diabetes-appropriate diet plan",
                ],
                resources=[
                    ExternalResource(
                        title="American Diabetes Association",
                        url="https://www.diabetes.org/",
                        description="Comprehensive diabetes management resources",
                    )
                ],
            )
        )

    if patient.systolic_bp >= HIGH_SYSTOLIC_BP or patient.diastolic_bp >= HIGH_DIASTOLIC_BP:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.MEDICAL,
                priority=elevated,
                title="Blood Pressure Management",
                description=(
                    f"Your blood pressure ({patient.systolic_bp:g}/{patient.diastolic_bp:g} mmHg) "
                    "is elevated and requires attention."
                ),
                action_items=[
                    "Monitor blood pressure regularly at home",
                    "Reduce sodium intake to less than 2,300mg per day (ideally 1,500mg)",
                    "Increase potassium-rich foods (bananas, oranges, spinach)",
                    "Maintain a healthy weight",
                    "Discuss blood pressure medications with your doctor if needed",
                ],
            )
        )

    total_mg_dl = _cholesterol_mg_dl(patient.total_cholesterol, patient.cholesterol_unit)
    hdl_mg_dl = _cholesterol_mg_dl(patient.hdl_cholesterol, patient.cholesterol_unit)
    if total_mg_dl >= HIGH_TOTAL_CHOLESTEROL_MG_DL or hdl_mg_dl < LOW_HDL_MG_DL:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.LIFESTYLE,
                priority=elevated,
                title="Cholesterol Management",
                description="Your cholesterol levels need attention to reduce cardiovascular risk.",
                action_items=[
                    "Adopt a heart-healthy diet low in saturated and trans fats",
                    "Increase soluble fiber intake (oats, beans, apples)",
                    "Include omega-3 fatty acids (fish, walnuts, flaxseed)",
                    "Increase physical activity to raise HDL cholesterol",
                    "Discuss statin therapy with your healthcare provider if appropriate",
                ],
            )
        )

    if patient.age >= SENIOR_AGE:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.MONITORING,
                priority=Priority.MEDIUM,
                title="Age-Related Cardiovascular Monitoring",
                description=(
                    "As we age, cardiovascular risk naturally increases. Enhanced monitoring is important."
                ),
                action_items=[
                    "Consider more frequent cardiovascular screenings",
                    "Discuss aspirin therapy for primary prevention",
                    "Monitor for signs of heart disease (chest pain, shortness of breath)",
                    "Maintain social connections and mental health",
                    "Consider cardiac rehabilitation programs if appropriate",
                ],
            )
        )

    if patient.family_history:
        recommendations.append(
            Recommendation(
                category=RecommendationCategory.MONITORING,
                priority=Priority.MEDIUM,
                title="Family History Considerations",
                description=(
                    "Your family history of heart disease increases your risk. Enhanced prevention is important."
                ),
                action_items=[
                    "Inform all healthcare providers about your family history",
                    "Consider earlier and more frequent cardiovascular screenings",
                    "Be extra vigilant about lifestyle modifications",
                    "Discuss genetic counseling if multiple family members are affected",
                    "Share risk reduction strategies with family members",
                ],
            )
        )

    return recommendations


def sort_recommendations(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Sort by priority (high first), then category (medical, lifestyle, monitoring).

    The sort is stable, so ties keep their insertion order.
    """
    return sorted(
        recommendations,
        key=lambda r: (-PRIORITY_ORDER[r.priority], -CATEGORY_ORDER[r.category]),
    )


def generate_recommendations(
    category: RiskCategory,
    risk_percentage: float,
    patient: PatientInput,
) -> list[Recommendation]:
    """Build the prioritized recommendation list for a patient.

    Args:
        category: Risk category from categorize_risk().
        risk_percentage: 10-year risk, interpolated into descriptions.
        patient: Patient data for the personalized recommendations.

    Returns:
        Base recommendations for the category plus personalized ones,
        sorted by priority and category.
    """
    category = RiskCategory(category)
    recommendations = get_base_recommendations(category, risk_percentage)
    recommendations.extend(get_personalized_recommendations(patient, category))

    logger.debug(f"Generated {len(recommendations)} recommendations for {category.value} risk")
    return sort_recommendations(recommendations)


# ============================================================================
# Display helpers
# ============================================================================

def get_risk_category_description(category: RiskCategory) -> str:
    """Human-readable label for a risk category."""
    return RISK_CATEGORY_DESCRIPTIONS.get(RiskCategory(category), "Unknown Risk")


def is_valid_risk_percentage(risk_percentage: float) -> bool:
    """Check that a risk percentage is a finite number in [0, 100]."""
    if isinstance(risk_percentage, bool) or not isinstance(risk_percentage, (int, float)):
        return False
    return math.isfinite(risk_percentage) and 0 <= risk_percentage <= 100


def format_risk_percentage(risk_percentage: float) -> str:
    """Format a risk percentage with one decimal, or "Invalid"."""
    if not is_valid_risk_percentage(risk_percentage):
        return "Invalid"
    return f"{risk_percentage:.1f}%"
