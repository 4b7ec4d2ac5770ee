"""Basic tests for package structure and imports."""


def test_package_import():
    """Test that the main package can be imported."""
    import policy_sensitivity

    assert policy_sensitivity.__version__ == "0.1.0"


def test_submodule_imports():
    """Test that submodules can be imported."""
    from policy_sensitivity import core, data, diagnostics, models
    from policy_sensitivity.sensitivity import engine

    # Basic import test - modules should exist
    assert core is not None
    assert data is not None
    assert diagnostics is not None
    assert models is not None
    assert engine is not None


def test_public_api():
    """Test that the main entry points are exported."""
    import policy_sensitivity

    for name in ("Policy", "sensitivity", "optimsens", "summarize", "sensitize"):
        assert hasattr(policy_sensitivity, name)
    assert issubclass(
        policy_sensitivity.InvalidInputError,
        policy_sensitivity.SensitivityAnalysisError,
    )
