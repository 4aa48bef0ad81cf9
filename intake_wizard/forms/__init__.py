"""
Wizard engine: field schema, validation, navigation, drafts and submission
"""
