from adexpress.utils.enums import AdCategory


class CacheConfig:
    TTL = 3600
    LOCAL_ADS_KEY = "ads:local"
    CHANGES_CHANNEL = "ads:changes"
    UPLOAD_HISTORY_KEY = "bulk_upload:history"
    SAVED_ADS_KEY = "saved_ads:{user_id}"
    STATISTICS_KEY = "full_statistics"


class BulkImportConfig:
    BATCH_SIZE = 50
    HISTORY_LIMIT = 10
    DEFAULT_DURATION_DAYS = 30
    CSV_EXTENSIONS = ('csv',)
    EXCEL_EXTENSIONS = ('xlsx',)
    FIELDS = (
        'title', 'subject', 'description', 'phone_number', 'category', 'city',
        'location', 'duration_days', 'is_featured', 'sub_description'
    )
    FEATURED_TRUE = ('yes', 'true', '1')
    FEATURED_VALUES = ('yes', 'no', 'true', 'false', '1', '0', '')


class SchedulerConfig:
    REFRESH_MINUTES = 5
    STATISTICS_MINUTES = 30


class ContentLimits:
    TITLE_MIN = 5
    TITLE_MAX = 100
    SUBJECT_MAX = 150
    DESCRIPTION_MIN = 20
    DESCRIPTION_MAX = 2000


CATEGORIES = {
    AdCategory.JOBS: {'label': 'Jobs', 'icon': '💼', 'description': 'Employment opportunities'},
    AdCategory.RENTALS: {'label': 'Rentals', 'icon': '🏠', 'description': 'Houses, PG, commercial spaces'},
    AdCategory.SALES: {'label': 'For Sale', 'icon': '🏷️', 'description': 'Property, electronics, furniture'},
    AdCategory.SERVICES: {'label': 'Services', 'icon': '🔧', 'description': 'Tutors, repairs, professionals'},
    AdCategory.VEHICLES: {'label': 'Vehicles', 'icon': '🚗', 'description': 'Cars, bikes, commercial'},
    AdCategory.MATRIMONIAL: {'label': 'Matrimonial', 'icon': '💍', 'description': 'Marriage proposals'},
    AdCategory.GENERAL: {'label': 'General', 'icon': '📢', 'description': 'Miscellaneous listings'},
}

VALID_CATEGORIES = [category.value for category in AdCategory]

# Days -> (label, price). A price of None means the tier is not sold separately.
DURATION_OPTIONS = {
    7: ('1 Week', 'Free'),
    14: ('2 Weeks', '₹49'),
    30: ('1 Month', '₹99'),
    60: ('2 Months', None),
    90: ('3 Months', '₹249'),
    180: ('6 Months', None),
    365: ('1 Year', None),
}

VALID_DURATIONS = sorted(DURATION_OPTIONS)

CITIES_BY_STATE = {
    'Andhra Pradesh': ['Visakhapatnam', 'Vijayawada', 'Guntur', 'Nellore', 'Kurnool', 'Tirupati', 'Rajahmundry',
                       'Kakinada', 'Kadapa', 'Anantapur'],
    'Arunachal Pradesh': ['Itanagar', 'Naharlagun', 'Pasighat', 'Tawang'],
    'Assam': ['Guwahati', 'Silchar', 'Dibrugarh', 'Jorhat', 'Nagaon', 'Tinsukia', 'Tezpur'],
    'Bihar': ['Patna', 'Gaya', 'Bhagalpur', 'Muzaffarpur', 'Darbhanga', 'Purnia', 'Arrah', 'Bihar Sharif'],
    'Chhattisgarh': ['Raipur', 'Bhilai', 'Bilaspur', 'Korba', 'Durg', 'Rajnandgaon'],
    'Goa': ['Panaji', 'Margao', 'Vasco da Gama', 'Mapusa', 'Ponda'],
    'Gujarat': ['Ahmedabad', 'Surat', 'Vadodara', 'Rajkot', 'Bhavnagar', 'Jamnagar', 'Junagadh', 'Gandhinagar',
                'Anand', 'Nadiad', 'Morbi', 'Mehsana', 'Bharuch'],
    'Haryana': ['Gurugram', 'Faridabad', 'Panipat', 'Ambala', 'Karnal', 'Sonipat', 'Rohtak', 'Hisar', 'Yamunanagar',
                'Panchkula'],
    'Himachal Pradesh': ['Shimla', 'Dharamshala', 'Solan', 'Mandi', 'Kullu', 'Manali', 'Baddi'],
    'Jharkhand': ['Ranchi', 'Jamshedpur', 'Dhanbad', 'Bokaro', 'Hazaribagh', 'Deoghar', 'Giridih'],
    'Karnataka': ['Bangalore', 'Mysore', 'Hubli', 'Mangalore', 'Belgaum', 'Gulbarga', 'Davangere', 'Shimoga',
                  'Tumkur', 'Udupi', 'Hassan'],
    'Kerala': ['Thiruvananthapuram', 'Kochi', 'Kozhikode', 'Thrissur', 'Kollam', 'Kannur', 'Alappuzha', 'Kottayam',
               'Palakkad', 'Malappuram'],
    'Madhya Pradesh': ['Bhopal', 'Indore', 'Jabalpur', 'Gwalior', 'Ujjain', 'Sagar', 'Dewas', 'Satna', 'Ratlam',
                       'Rewa'],
    'Maharashtra': ['Mumbai', 'Pune', 'Nagpur', 'Thane', 'Nashik', 'Aurangabad', 'Solapur', 'Kolhapur', 'Amravati',
                    'Navi Mumbai', 'Sangli', 'Malegaon', 'Jalgaon', 'Akola', 'Latur', 'Ahmednagar'],
    'Manipur': ['Imphal', 'Thoubal', 'Bishnupur'],
    'Meghalaya': ['Shillong', 'Tura', 'Jowai'],
    'Mizoram': ['Aizawl', 'Lunglei', 'Champhai'],
    'Nagaland': ['Kohima', 'Dimapur', 'Mokokchung'],
    'Odisha': ['Bhubaneswar', 'Cuttack', 'Rourkela', 'Berhampur', 'Sambalpur', 'Puri', 'Balasore'],
    'Punjab': ['Ludhiana', 'Amritsar', 'Jalandhar', 'Patiala', 'Bathinda', 'Mohali', 'Hoshiarpur', 'Pathankot'],
    'Rajasthan': ['Jaipur', 'Jodhpur', 'Udaipur', 'Kota', 'Bikaner', 'Ajmer', 'Bhilwara', 'Alwar', 'Sikar',
                  'Sri Ganganagar'],
    'Sikkim': ['Gangtok', 'Namchi', 'Gyalshing'],
    'Tamil Nadu': ['Chennai', 'Coimbatore', 'Madurai', 'Tiruchirappalli', 'Salem', 'Tirunelveli', 'Tiruppur',
                   'Vellore', 'Erode', 'Thoothukudi', 'Dindigul', 'Thanjavur', 'Nagercoil'],
    'Telangana': ['Hyderabad', 'Warangal', 'Nizamabad', 'Karimnagar', 'Khammam', 'Ramagundam', 'Secunderabad'],
    'Tripura': ['Agartala', 'Udaipur', 'Dharmanagar'],
    'Uttar Pradesh': ['Lucknow', 'Kanpur', 'Ghaziabad', 'Agra', 'Varanasi', 'Meerut', 'Prayagraj', 'Bareilly',
                      'Aligarh', 'Moradabad', 'Saharanpur', 'Gorakhpur', 'Noida', 'Firozabad', 'Jhansi', 'Mathura',
                      'Ayodhya'],
    'Uttarakhand': ['Dehradun', 'Haridwar', 'Roorkee', 'Haldwani', 'Rishikesh', 'Nainital', 'Mussoorie'],
    'West Bengal': ['Kolkata', 'Howrah', 'Durgapur', 'Asansol', 'Siliguri', 'Bardhaman', 'Malda', 'Kharagpur',
                    'Haldia'],
    'Delhi': ['New Delhi', 'Delhi', 'Dwarka', 'Rohini', 'Karol Bagh', 'Lajpat Nagar', 'Connaught Place'],
    'Chandigarh': ['Chandigarh'],
    'Puducherry': ['Puducherry', 'Karaikal'],
    'Jammu & Kashmir': ['Srinagar', 'Jammu', 'Anantnag', 'Baramulla', 'Sopore'],
    'Ladakh': ['Leh', 'Kargil'],
    'Andaman & Nicobar': ['Port Blair'],
    'Dadra & Nagar Haveli': ['Silvassa'],
    'Daman & Diu': ['Daman', 'Diu'],
    'Lakshadweep': ['Kavaratti'],
}

CITIES = sorted({city for cities in CITIES_BY_STATE.values() for city in cities})

# Lower-cased lookup used to canonicalise user supplied city names.
CITY_LOOKUP = {city.lower(): city for city in CITIES}

SPAM_PHRASES = ('free money', 'earn $', 'click here', 'act now', 'limited time')
