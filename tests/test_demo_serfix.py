from demo_serfix import SAMPLES, main, run_demo


def test_run_demo_prints_every_sample(capsys):
    run_demo()
    out = capsys.readouterr().out
    for label in SAMPLES:
        assert f"[{label}]" in out
    assert "Idempotence check: OK" in out


def test_main_verbose(capsys):
    main(["--verbose"])
    assert "Idempotence check: OK" in capsys.readouterr().out
