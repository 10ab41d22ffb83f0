"""First release: seed a flag and the pirate registry."""


def define(control):
    store = control.store
    changes = control.change_set("release-1.0")

    changes.add(
        "init:foo:bar",
        lambda: store.hset("foo:bar", {"value": "a"}),
        payload={"key": "foo:bar", "value": "a"},
    )

    pirates = {
        "Blackbeard": "Queen Anne's Revenge",
        "Long John Silver": "Hispaniola",
    }
    changes.add(
        "init:pirates",
        lambda: store.hset("pirates", pirates),
        payload={"key": "pirates", "ships": pirates},
    )
    return changes
