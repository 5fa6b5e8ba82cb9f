"""Natural language engine for pipeline chat.

Modules:
    intent_classifier: Claude-backed classifier and the ``Classifier`` protocol.
    fallback_parser: Deterministic rule-based classifier.
    elicitation: Question and acknowledgement wording.
    config: Model selection.
"""
