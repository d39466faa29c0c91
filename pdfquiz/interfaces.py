class InteractionInterface:
    def output(self, text: str):
        raise NotImplementedError

    def error(self, text: str):
        raise NotImplementedError

    def input(self, prompt: str = "") -> str:
        raise NotImplementedError


class TextCLI(InteractionInterface):
    def output(self, text: str):
        # Blue for the quiz
        print(f"\n\033[1;34m{text}\033[0m")

    def error(self, text: str):
        # Red for failures
        print(f"\n\033[1;31m[Error]: {text}\033[0m")

    def input(self, prompt: str = "") -> str:
        # Green for the student
        return input(f"\n\033[1;32m[You]{prompt}: \033[0m").strip()
