import copy

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from telco_churn.config import get_config  # noqa: E402
from telco_churn.data import DataPreprocessor  # noqa: E402
from telco_churn.features import FeatureEngineer  # noqa: E402

PAYMENT_METHODS = [
    "Bank transfer (automatic)",
    "Credit card (automatic)",
    "Electronic check",
    "Mailed check",
]


def make_telco_frame(n: int = 240, seed: int = 7) -> pd.DataFrame:
    """Synthetic Telco-shaped customer table with a learnable churn signal."""
    rng = np.random.default_rng(seed)

    tenure = rng.integers(0, 73, n)
    monthly = rng.uniform(18.0, 118.0, n).round(2)
    total = (tenure * monthly * rng.uniform(0.95, 1.05, n)).round(2)
    contract = rng.choice(["Month-to-month", "One year", "Two year"], n, p=[0.5, 0.25, 0.25])
    internet = rng.choice(["DSL", "Fiber optic", "No"], n, p=[0.35, 0.45, 0.2])

    logit = -0.8 + 1.4 * (contract == "Month-to-month") + 0.9 * (internet == "Fiber optic") - 0.04 * tenure
    churn = rng.random(n) < 1.0 / (1.0 + np.exp(-logit))

    return pd.DataFrame({
        "customerID": [f"{i:04d}-TEST" for i in range(n)],
        "gender": rng.choice(["Female", "Male"], n),
        "SeniorCitizen": rng.choice([0, 1], n, p=[0.8, 0.2]),
        "Partner": rng.choice(["No", "Yes"], n),
        "Dependents": rng.choice(["No", "Yes"], n, p=[0.7, 0.3]),
        "tenure": tenure,
        "PhoneService": rng.choice(["No", "Yes"], n, p=[0.1, 0.9]),
        "InternetService": internet,
        "Contract": contract,
        "PaperlessBilling": rng.choice(["No", "Yes"], n, p=[0.4, 0.6]),
        "PaymentMethod": rng.choice(PAYMENT_METHODS, n),
        "MonthlyCharges": monthly,
        "TotalCharges": total,
        "Churn": np.where(churn, "Yes", "No"),
    })


@pytest.fixture
def config():
    cfg = copy.deepcopy(get_config())
    cfg["logging"]["log_file"] = None
    return cfg


@pytest.fixture
def telco_df():
    return make_telco_frame()


@pytest.fixture
def telco_csv(tmp_path, telco_df):
    """CSV where TotalCharges arrives as text with blank cells."""
    df = telco_df.copy()
    df["TotalCharges"] = df["TotalCharges"].map(lambda v: f"{v:.2f}").astype(object)
    df.loc[df["tenure"] == 0, "TotalCharges"] = " "
    df.loc[[3, 17], "TotalCharges"] = " "
    path = tmp_path / "telco.csv"
    df.to_csv(path, index=False)
    return path


@pytest.fixture
def prepared_df(config, telco_df):
    """Imputed table with derived features."""
    df = DataPreprocessor(config).impute_numeric(telco_df)
    return FeatureEngineer(config).create_all_features(df)


@pytest.fixture
def model_columns(config):
    model_config = config["model"]
    return list(model_config["categorical"]), list(model_config["numeric"])
