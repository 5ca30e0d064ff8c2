from rescache import Activating, Installed, Installing, Serving, Uninstalled


def test_happy_path():
    state = Uninstalled(generation="smart-home-v3")

    installing = state.next()
    assert installing == Installing(generation="smart-home-v3")

    installed = installing.next(seeded=True)
    assert installed == Installed(generation="smart-home-v3")

    activating = installed.next()
    assert activating == Activating(generation="smart-home-v3")

    serving = activating.next()
    assert serving == Serving(generation="smart-home-v3")
    assert serving.next() is None


def test_failed_seeding_goes_back_to_uninstalled():
    installing = Installing(generation="smart-home-v3")

    assert installing.next(seeded=False) == Uninstalled(generation="smart-home-v3")
