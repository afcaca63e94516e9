"""Shared exceptions for service layer operations."""


class PromptNotFoundError(Exception):
    """Raised when a prompt does not exist."""

    def __init__(self, prompt_id: int) -> None:
        self.prompt_id = prompt_id
        super().__init__(f"Prompt {prompt_id} not found")


class PromptAccessDeniedError(Exception):
    """
    Raised when a prompt exists but the caller may not access it.

    Reads are denied for non-owners of private or shared prompts; every write is
    denied for non-owners.
    """

    def __init__(self, prompt_id: int) -> None:
        self.prompt_id = prompt_id
        super().__init__(f"Access denied to prompt {prompt_id}")


class CategoryNotFoundError(Exception):
    """Raised when a category does not exist."""

    def __init__(self, category_id: int) -> None:
        self.category_id = category_id
        super().__init__(f"Category {category_id} not found")


class CategoryInUseError(Exception):
    """Raised when deleting a category that prompts still reference."""

    def __init__(self, category_id: int, prompt_count: int) -> None:
        self.category_id = category_id
        self.prompt_count = prompt_count
        super().__init__(
            f"Cannot delete category with {prompt_count} prompt(s). "
            "Move or delete the prompts first.",
        )


class CategoryNameExistsError(Exception):
    """Raised when creating or renaming a category to a name that already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Category '{name}' already exists")
