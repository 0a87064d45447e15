from blobjack import Orchestrator, store_factory



def main():
    # Example usage against the in-process store
    store = store_factory("memory", {"account_id": "demo"})

    with Orchestrator.for_store(store) as orch:
        orch.create_container("photos")
        orch.write_many("photos", [("a/b", "1"), ("a/c", "2"), ("a/b/d", "3"), ("x", "4")])

        for depth, node in orch.list("photos"):
            print(f"{'  ' * depth}{node.key}")

        print(f"Read back: {orch.read('photos', 'a/b/d').payload!r}")

if __name__ == "__main__":
    main()
