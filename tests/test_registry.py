"""Tests for the diagram registry and its cleanup."""

from helpers import code_block, page

from mermaid_exporter.anchors import AnchorResolver
from mermaid_exporter.dom import EXPORT_BUTTON_CLASS, EXPORT_CONTAINER_CLASS
from mermaid_exporter.host import HostDocument
from mermaid_exporter.registry import DiagramRegistry, find_owner


def _register_all(document: HostDocument, registry: DiagramRegistry) -> None:
    resolver = AnchorResolver(document)
    for node in document.select("code.language-mermaid"):
        control = resolver.attach(resolver.resolve(node), lambda: None)
        registry.register(node, control)


def test_registration_is_by_identity() -> None:
    """Test that an equal but distinct node is not registered."""
    document = HostDocument(page(code_block("graph TD\nA-->B"), code_block("graph TD\nA-->B")))
    first, second = document.select("code")
    registry = DiagramRegistry(document)

    registry.register(first)
    assert first == second
    assert registry.is_registered(first)
    assert not registry.is_registered(second)
    assert len(registry) == 1


def test_attached_node_is_kept() -> None:
    """Test that a node still in the tree is not dropped."""
    document = HostDocument(page(code_block("graph TD\nA-->B")))
    registry = DiagramRegistry(document)
    _register_all(document, registry)

    node = document.select_one("code")
    assert not registry.unregister_if_detached(node)
    assert registry.is_registered(node)


def test_detached_node_drops_with_its_control() -> None:
    """Test that removing a diagram unregisters it and removes its control."""
    document = HostDocument(page(code_block("graph TD\nA-->B"), code_block("pie\n\"a\": 1")))
    registry = DiagramRegistry(document)
    _register_all(document, registry)
    removed_pre = document.select("pre")[0]
    node = removed_pre.select_one("code")
    control = registry.control_for(node)

    document.remove(removed_pre)
    assert registry.cleanup() == 1
    assert not registry.is_registered(node)
    assert control.parent is None
    assert len(registry) == 1
    assert len(document.select(f".{EXPORT_BUTTON_CLASS}")) == 1


def test_cleanup_removes_orphan_controls() -> None:
    """Test that a control without a diagram owner is removed."""
    document = HostDocument(
        f'<body><div class="toolbar"><button class="{EXPORT_BUTTON_CLASS}"></button></div></body>'
    )
    registry = DiagramRegistry(document)
    assert registry.cleanup() == 0
    assert document.select(f".{EXPORT_BUTTON_CLASS}") == []


def test_cleanup_keeps_owned_controls() -> None:
    """Test that cleanup leaves live diagrams alone."""
    document = HostDocument(page(code_block("graph TD\nA-->B")))
    registry = DiagramRegistry(document)
    _register_all(document, registry)

    assert registry.cleanup() == 0
    assert len(document.select(f".{EXPORT_BUTTON_CLASS}")) == 1


def test_owner_is_enclosing_block() -> None:
    """Test walking up from a control to its diagram."""
    document = HostDocument(page(code_block("graph TD\nA-->B")))
    registry = DiagramRegistry(document)
    _register_all(document, registry)

    control = document.select_one(f".{EXPORT_BUTTON_CLASS}")
    assert find_owner(control) is document.select_one("pre")


def test_empty_synthesized_container_removed() -> None:
    """Test that a synthesized container goes once its control is gone."""
    document = HostDocument(page(code_block("graph TD\nA-->B")))
    registry = DiagramRegistry(document)
    _register_all(document, registry)
    node = document.select_one("code")
    assert document.select_one(f".{EXPORT_CONTAINER_CLASS}") is not None

    # Detach only the code; its control must follow.
    document.remove(node)
    registry.cleanup()
    assert document.select_one(f".{EXPORT_CONTAINER_CLASS}") is None
