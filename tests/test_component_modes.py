from tank_control.component_modes import ComponentMode, parse_component_flags


def test_defaults_enable_everything():
    mode, remaining = parse_component_flags([])
    assert mode == ComponentMode()
    assert remaining == []
    assert str(mode) == "Ramsete → Wheels(FF+PID)"


def test_flags_disable_components_and_keep_other_args():
    mode, remaining = parse_component_flags(["--no-ramsete", "-v", "--no-pid", "--sim"])

    assert not mode.use_ramsete
    assert mode.use_feedforward
    assert not mode.use_pid
    assert remaining == ["-v", "--sim"]
    assert str(mode) == "Reference Tracking → Wheels(FF)"


def test_all_wheel_terms_off():
    mode = ComponentMode(use_feedforward=False, use_pid=False)
    assert str(mode).endswith("Wheels(Off)")
    assert mode.to_dict() == {"use_ramsete": True, "use_feedforward": False, "use_pid": False}
