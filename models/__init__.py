from .user import User
from .coinTransaction import CoinTransaction
from .experience import Experience
from .escrow import Escrow
from .ticket import Ticket
from .chat import Chat, ChatMember
