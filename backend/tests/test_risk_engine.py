"""Tests for the Framingham risk engine."""

from datetime import timedelta
from typing import Any

import pytest
from pydantic import ValidationError as PydanticValidationError

from cardiac_risk.core.config import settings
from cardiac_risk.schemas import PartialPatientInput, PatientInput
from cardiac_risk.schemas.base import (
    Gender,
    MeasurementUnit,
    Priority,
    RiskCategory,
    ValidationCode,
)
from cardiac_risk.services.risk_categorization import CATEGORY_ORDER, PRIORITY_ORDER
from cardiac_risk.services.risk_engine import (
    COEFFICIENTS,
    FAMILY_HISTORY_SCORE,
    AlgorithmError,
    InvalidInputError,
    OutOfRangeError,
    RiskCalculationError,
    RiskEngine,
    calculate_cardiac_risk,
    calculate_risk_factor_scores,
    convert_score_to_risk_percentage,
    create_sample_patient,
    generate_comparison_data,
    get_risk_engine,
    reset_risk_engine,
    standardize_units,
)


class TestScenarios:
    """End-to-end calculations for reference patients."""

    def setup_method(self) -> None:
        """Create a fresh engine with default configuration."""
        self.engine = RiskEngine()

    def test_middle_aged_male(self, sample_patient: dict[str, Any]) -> None:
        """Test the sample patient lands in the moderate category."""
        result = self.engine.compute(sample_patient)

        assert 5 < result.ten_year_risk < 25
        assert result.ten_year_risk == 14.5
        assert result.risk_category == RiskCategory.MODERATE

    def test_young_female_is_low_risk(self, low_risk_patient: dict[str, Any]) -> None:
        """Test a young woman with good values is low risk."""
        result = self.engine.compute(low_risk_patient)

        assert result.ten_year_risk < 10
        assert result.ten_year_risk == 1.1
        assert result.risk_category == RiskCategory.LOW

    def test_all_risk_factors_is_high_risk(self, high_risk_patient: dict[str, Any]) -> None:
        """Test every risk factor together gives a high risk."""
        result = self.engine.compute(high_risk_patient)

        assert result.ten_year_risk > 20
        assert result.risk_category == RiskCategory.HIGH

        titles = {r.title: r for r in result.recommendations}
        for title in (
            "Smoking Cessation - Critical Priority",
            "Diabetes Management - Essential for Heart Health",
            "Blood Pressure Management",
            "Cholesterol Management",
        ):
            assert titles[title].priority == Priority.HIGH

    def test_recommendations_are_sorted(self, high_risk_patient: dict[str, Any]) -> None:
        """Test recommendations come out in priority then category order."""
        result = self.engine.compute(high_risk_patient)
        keys = [
            (PRIORITY_ORDER[r.priority], CATEGORY_ORDER[r.category])
            for r in result.recommendations
        ]
        assert keys == sorted(keys, reverse=True)

    def test_reversed_blood_pressure_is_rejected(self, sample_patient: dict[str, Any]) -> None:
        """Test blocking validation errors stop the calculation."""
        record = {**sample_patient, "systolicBP": 80, "diastolicBP": 90}

        with pytest.raises(InvalidInputError) as exc_info:
            self.engine.compute(record)

        assert exc_info.value.code == "INVALID_INPUT"
        assert any(
            e.field == "diastolic_bp" and e.code == ValidationCode.LOGICAL_INCONSISTENCY
            for e in exc_info.value.errors
        )

    @pytest.mark.parametrize("age", [0.5, 10.5, 95.5])
    def test_fractional_age_outside_range_is_rejected(self, sample_patient: dict[str, Any], age: float) -> None:
        """Test fractional ages far from the study range are not scored."""
        with pytest.raises(InvalidInputError) as exc_info:
            self.engine.compute({**sample_patient, "age": age})

        assert any(
            e.field == "age" and e.code == ValidationCode.BOUNDARY_VALUE
            for e in exc_info.value.errors
        )

    def test_equivalent_units_agree(self, sample_patient: dict[str, Any]) -> None:
        """Test mg/dL and mmol/L inputs for the same patient agree."""
        mmol = {
            **sample_patient,
            "totalCholesterol": 5.17,
            "hdlCholesterol": 1.16,
            "cholesterolUnit": "mmol/L",
        }

        mg_dl_risk = self.engine.compute(sample_patient).ten_year_risk
        mmol_risk = self.engine.compute(mmol).ten_year_risk

        assert abs(mg_dl_risk - mmol_risk) < 0.1


class TestComputeBehaviour:
    """Properties of RiskEngine.compute."""

    def setup_method(self) -> None:
        """Create a fresh engine with default configuration."""
        self.engine = RiskEngine()

    def test_accepts_models(self, sample_patient: dict[str, Any]) -> None:
        """Test full and partial models give the same result as a mapping."""
        expected = self.engine.compute(sample_patient).ten_year_risk
        assert self.engine.compute(PatientInput.model_validate(sample_patient)).ten_year_risk == expected
        assert self.engine.compute(PartialPatientInput.model_validate(sample_patient)).ten_year_risk == expected

    def test_deterministic(self, high_risk_patient: dict[str, Any]) -> None:
        """Test identical input gives identical output apart from the timestamp."""
        first = self.engine.compute(high_risk_patient).model_dump(exclude={"calculated_at"})
        second = self.engine.compute(high_risk_patient).model_dump(exclude={"calculated_at"})
        assert first == second

    def test_result_is_frozen(self, sample_patient: dict[str, Any]) -> None:
        """Test results cannot be modified."""
        result = self.engine.compute(sample_patient)
        with pytest.raises(PydanticValidationError):
            result.ten_year_risk = 50.0

    def test_calculated_at_is_utc(self, sample_patient: dict[str, Any]) -> None:
        """Test the timestamp is timezone-aware UTC."""
        result = self.engine.compute(sample_patient)
        assert result.calculated_at.utcoffset() == timedelta(0)

    def test_algorithm_version(self, sample_patient: dict[str, Any]) -> None:
        """Test the version comes from settings unless overridden."""
        assert self.engine.compute(sample_patient).algorithm_version == settings.algorithm_version
        assert RiskEngine(algorithm_version="test").compute(sample_patient).algorithm_version == "test"

    def test_warnings_are_attached(self, sample_patient: dict[str, Any]) -> None:
        """Test non-blocking findings travel with the result."""
        result = self.engine.compute({**sample_patient, "age": 25})
        assert [w.code for w in result.warnings] == [ValidationCode.BOUNDARY_VALUE]

    def test_clean_input_has_no_warnings(self, sample_patient: dict[str, Any]) -> None:
        """Test a clean record has an empty warnings list."""
        assert self.engine.compute(sample_patient).warnings == []

    def test_zero_hdl_is_out_of_range(self, sample_patient: dict[str, Any]) -> None:
        """Test a value that only warns in validation cannot be scored."""
        with pytest.raises(OutOfRangeError) as exc_info:
            self.engine.compute({**sample_patient, "hdlCholesterol": 0})
        assert exc_info.value.code == "OUT_OF_RANGE"

    def test_errors_are_value_errors(self) -> None:
        """Test engine errors share a ValueError base."""
        for error in (InvalidInputError, AlgorithmError, OutOfRangeError):
            assert issubclass(error, RiskCalculationError)
            assert issubclass(error, ValueError)

    def test_does_not_mutate_input(self, sample_patient: dict[str, Any]) -> None:
        """Test the caller's mapping is left untouched."""
        before = dict(sample_patient)
        self.engine.compute(sample_patient)
        assert sample_patient == before

    @pytest.mark.parametrize("gender", ["male", "female"])
    @pytest.mark.parametrize("age", [30, 50, 79])
    @pytest.mark.parametrize("sbp,dbp", [(90, 60), (200, 110)])
    @pytest.mark.parametrize("smoking", ["never", "current"])
    def test_risk_is_bounded(
        self,
        sample_patient: dict[str, Any],
        gender: str,
        age: int,
        sbp: int,
        dbp: int,
        smoking: str,
    ) -> None:
        """Test risk stays in [0, 100] and matches its category."""
        result = self.engine.compute(
            {
                **sample_patient,
                "gender": gender,
                "age": age,
                "systolicBP": sbp,
                "diastolicBP": dbp,
                "smokingStatus": smoking,
            }
        )
        assert 0 <= result.ten_year_risk <= 100
        if result.ten_year_risk < 10:
            assert result.risk_category == RiskCategory.LOW
        elif result.ten_year_risk < 20:
            assert result.risk_category == RiskCategory.MODERATE
        else:
            assert result.risk_category == RiskCategory.HIGH


class TestMonotonicity:
    """Risk moves in the clinically expected direction."""

    def setup_method(self) -> None:
        """Create a fresh engine with default configuration."""
        self.engine = RiskEngine()

    def _risks(self, patient: dict[str, Any], field: str, values: list[float]) -> list[float]:
        return [self.engine.compute({**patient, field: v}).ten_year_risk for v in values]

    def test_age_increases_risk(self, sample_patient: dict[str, Any]) -> None:
        """Test older patients have higher risk."""
        risks = self._risks(sample_patient, "age", [40, 50, 60, 70])
        assert risks == sorted(risks)
        assert risks[0] < risks[-1]

    def test_total_cholesterol_increases_risk(self, sample_patient: dict[str, Any]) -> None:
        """Test higher total cholesterol raises risk."""
        risks = self._risks(sample_patient, "totalCholesterol", [160, 200, 240, 280])
        assert risks == sorted(risks)
        assert risks[0] < risks[-1]

    def test_systolic_increases_risk(self, sample_patient: dict[str, Any]) -> None:
        """Test higher systolic pressure raises risk."""
        risks = self._risks(sample_patient, "systolicBP", [120, 140, 160, 180])
        assert risks == sorted(risks)
        assert risks[0] < risks[-1]

    def test_hdl_decreases_risk(self, sample_patient: dict[str, Any]) -> None:
        """Test higher HDL lowers risk."""
        risks = self._risks(sample_patient, "hdlCholesterol", [30, 45, 60, 75])
        assert risks == sorted(risks, reverse=True)
        assert risks[0] > risks[-1]

    @pytest.mark.parametrize(
        "field,value",
        [("smokingStatus", "current"), ("hasDiabetes", True), ("onBPMedication", True)],
    )
    def test_risk_factor_increases_risk(
        self, sample_patient: dict[str, Any], field: str, value: Any
    ) -> None:
        """Test adding a binary risk factor raises risk."""
        base = self.engine.compute(sample_patient).ten_year_risk
        assert self.engine.compute({**sample_patient, field: value}).ten_year_risk > base

    def test_former_smoker_scores_as_non_smoker(self, sample_patient: dict[str, Any]) -> None:
        """Test only current smoking enters the score."""
        base = self.engine.compute(sample_patient).ten_year_risk
        assert self.engine.compute({**sample_patient, "smokingStatus": "former"}).ten_year_risk == base


class TestFamilyHistoryModifier:
    """Tests for the configurable family history term."""

    def test_enabled_by_default(self, sample_patient: dict[str, Any]) -> None:
        """Test family history adds a flat term and raises risk."""
        engine = RiskEngine()
        without = engine.compute(sample_patient)
        with_history = engine.compute({**sample_patient, "familyHistory": True})

        assert with_history.risk_factors.family_history == FAMILY_HISTORY_SCORE
        assert without.risk_factors.family_history == 0.0
        assert with_history.ten_year_risk > without.ten_year_risk

    def test_disabled_by_argument(self, sample_patient: dict[str, Any]) -> None:
        """Test the modifier can be switched off per engine."""
        engine = RiskEngine(include_family_history=False)
        base = engine.compute(sample_patient).ten_year_risk
        result = engine.compute({**sample_patient, "familyHistory": True})

        assert result.risk_factors.family_history == 0.0
        assert result.ten_year_risk == base

    def test_disabled_by_settings(self, monkeypatch: pytest.MonkeyPatch, sample_patient: dict[str, Any]) -> None:
        """Test the singleton picks up the settings flag after a reset."""
        monkeypatch.setattr(settings, "include_family_history_modifier", False)
        reset_risk_engine()

        result = get_risk_engine().compute({**sample_patient, "familyHistory": True})
        assert result.risk_factors.family_history == 0.0


class TestCalculationSteps:
    """Tests for the individual calculation functions."""

    def test_standardize_converts_mmol(self) -> None:
        """Test cholesterol is converted with the unrounded factor."""
        patient = create_sample_patient().model_copy(
            update={"total_cholesterol": 5.17, "hdl_cholesterol": 1.16, "cholesterol_unit": MeasurementUnit.MMOL_L}
        )
        standardized = standardize_units(patient)

        assert standardized.cholesterol_unit == MeasurementUnit.MG_DL
        assert standardized.total_cholesterol == pytest.approx(5.17 * 38.67)
        assert standardized.hdl_cholesterol == pytest.approx(1.16 * 38.67)
        assert patient.cholesterol_unit == MeasurementUnit.MMOL_L

    def test_standardize_keeps_mg_dl(self) -> None:
        """Test mg/dL records are returned unchanged."""
        patient = create_sample_patient()
        assert standardize_units(patient) is patient

    def test_factor_scores(self) -> None:
        """Test per-factor log-hazard terms for the sample patient."""
        factors = calculate_risk_factor_scores(create_sample_patient())

        assert factors.age == pytest.approx(12.2671, abs=1e-3)
        assert factors.cholesterol == pytest.approx(2.4035, abs=1e-3)
        assert factors.blood_pressure == pytest.approx(9.5523, abs=1e-3)
        assert factors.gender == 0.0
        assert factors.smoking == 0.0
        assert factors.diabetes == 0.0
        assert factors.total == pytest.approx(24.2230, abs=1e-3)

    def test_treated_blood_pressure_uses_treated_coefficient(self) -> None:
        """Test BP medication switches the SBP coefficient."""
        patient = create_sample_patient()
        treated = patient.model_copy(update={"on_bp_medication": True})

        untreated_score = calculate_risk_factor_scores(patient).blood_pressure
        treated_score = calculate_risk_factor_scores(treated).blood_pressure
        ratio = COEFFICIENTS[Gender.MALE].ln_sbp_treated / COEFFICIENTS[Gender.MALE].ln_sbp_untreated

        assert treated_score == pytest.approx(untreated_score * ratio)

    @pytest.mark.parametrize(
        "update",
        [
            {"age": 0},
            {"age": 151},
            {"total_cholesterol": 2001},
            {"hdl_cholesterol": 0},
            {"systolic_bp": 401},
            {"systolic_bp": -120},
        ],
    )
    def test_out_of_range_values(self, update: dict[str, float]) -> None:
        """Test values the log terms cannot score are rejected."""
        patient = create_sample_patient().model_copy(update=update)
        with pytest.raises(OutOfRangeError):
            calculate_risk_factor_scores(patient)

    def test_non_finite_value_is_algorithm_error(self) -> None:
        """Test NaN inputs are an algorithm error, not a range error."""
        patient = create_sample_patient().model_copy(update={"total_cholesterol": float("nan")})
        with pytest.raises(AlgorithmError):
            calculate_risk_factor_scores(patient)

    def test_score_to_percentage(self) -> None:
        """Test the survival transform for the sample patient's score."""
        assert convert_score_to_risk_percentage(24.2230, Gender.MALE) == 14.5

    def test_mean_score_gives_baseline_risk(self) -> None:
        """Test a score equal to the mean gives 1 - S0."""
        assert convert_score_to_risk_percentage(23.9802, Gender.MALE) == 11.6
        assert convert_score_to_risk_percentage(26.1931, Gender.FEMALE) == 5.0

    def test_percentage_is_clamped(self) -> None:
        """Test extreme scores stay inside [0, 100]."""
        assert convert_score_to_risk_percentage(-1000, Gender.MALE) == 0.0
        assert convert_score_to_risk_percentage(40, Gender.MALE) == 100.0

    @pytest.mark.parametrize("score", [float("nan"), float("inf"), 1000.0])
    def test_non_finite_score(self, score: float) -> None:
        """Test non-finite and overflowing scores raise AlgorithmError."""
        with pytest.raises(AlgorithmError):
            convert_score_to_risk_percentage(score, Gender.FEMALE)


class TestComparisonData:
    """Tests for the illustrative population comparison."""

    def test_male_decade(self) -> None:
        """Test male lookups by age decade."""
        data = generate_comparison_data(55, Gender.MALE)
        assert data.average_for_age == 9
        assert data.average_for_gender == 12
        assert data.ideal_risk == 2

    def test_female_decade(self) -> None:
        """Test female lookups by age decade."""
        data = generate_comparison_data(72, "female")
        assert data.average_for_age == 12
        assert data.average_for_gender == 6
        assert data.ideal_risk == 1

    @pytest.mark.parametrize("age", [25, 85])
    def test_missing_decade_defaults(self, age: int) -> None:
        """Test decades outside the table fall back to 10%."""
        assert generate_comparison_data(age, Gender.MALE).average_for_age == 10


class TestRiskEngineSingleton:
    """Tests for the shared engine instance."""

    def test_singleton(self) -> None:
        """Test repeated access returns the same engine."""
        assert get_risk_engine() is get_risk_engine()

    def test_reset(self) -> None:
        """Test reset creates a new engine on next access."""
        first = get_risk_engine()
        reset_risk_engine()
        assert get_risk_engine() is not first

    def test_calculate_cardiac_risk(self) -> None:
        """Test the module-level helper uses the shared engine."""
        result = calculate_cardiac_risk(create_sample_patient())
        assert result.ten_year_risk == 14.5

    def test_get_stats(self) -> None:
        """Test stats describe the configuration."""
        stats = get_risk_engine().get_stats()
        assert stats["algorithm"] == "framingham"
        assert stats["algorithm_version"] == settings.algorithm_version
        assert set(stats["supported_genders"]) == {"male", "female"}
