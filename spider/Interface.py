from spider.Core import Core, GameEvent
from spider.view_model import GameSnapshot


class Interface:

    def __init__(self):
        self.core: Core = None

    def onStart(self):
        pass

    def onEvent(self, event: GameEvent):
        """
        Invoked when a game event is performed, before the call that caused it returns.
        :param event:
        :return:
        """
        pass

    def onStateChange(self, snapshot: GameSnapshot):
        """
        Invoked once at the end of every mutating call on the core.
        :param snapshot: read-only state after the call
        :return:
        """
        self.notifyRedraw(snapshot)

    def notifyRedraw(self, snapshot: GameSnapshot):
        pass

    def onWin(self):
        pass
